"""Domain models describing the storage medium."""

from dataclasses import dataclass, field

PERSISTENT = "persistent"
MEMORY = "memory"
UNKNOWN = "unknown"


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a single storage write or delete."""

    success: bool
    medium: str | None = None
    fallback: bool = False
    error: str | None = None


@dataclass(frozen=True)
class StorageStatus:
    """Current medium, latched availability and in-memory item count."""

    medium: str
    available: bool | None
    memory_item_count: int


@dataclass(frozen=True)
class DiagnosticCheck:
    """Result of one backend self-test."""

    passed: bool
    error: str | None = None


@dataclass(frozen=True)
class Recommendation:
    """Advice derived from failed diagnostics."""

    type: str
    message: str
    action: str


@dataclass(frozen=True)
class DiagnosticsReport:
    """Backend self-test results."""

    timestamp: str
    checks: dict[str, DiagnosticCheck]
    recommendations: list[Recommendation] = field(default_factory=list)
