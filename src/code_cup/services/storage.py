"""Storage adapter that hides an unreliable persistent backend."""

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol

from code_cup.domain.storage import (
    MEMORY,
    PERSISTENT,
    UNKNOWN,
    DiagnosticCheck,
    DiagnosticsReport,
    Recommendation,
    StorageResult,
    StorageStatus,
)

_logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

_DIAGNOSTICS_PREFIX = "@Diagnostics:"
_LARGE_VALUE_SIZE = 1024 * 100
_CONCURRENT_KEYS = 5


class StorageBackend(Protocol):
    """Platform key-value store holding string values."""

    async def get_item(self, key: str) -> str | None:
        """Return the stored string for a key, if present."""

    async def set_item(self, key: str, value: str) -> None:
        """Store a string under a key."""

    async def remove_item(self, key: str) -> None:
        """Delete a key."""

    async def multi_remove(self, keys: list[str]) -> None:
        """Delete several keys."""

    async def clear(self) -> None:
        """Delete every key owned by the app."""


@dataclass
class StorageAdapter:
    """Route reads and writes to the backend or to an in-memory map.

    Backend availability is probed once and latched for the lifetime of the
    adapter. Only ``retest`` and ``clear_all`` reset the latch. No operation
    raises: failures degrade to memory and are reported through the result.
    """

    backend: StorageBackend | None
    namespace: str = "@CodeCup:"
    probe_timeout_seconds: float = 5.0
    probe_attempts: int = 3
    probe_retry_delay_seconds: float = 0.1
    debug: bool = False
    _available: bool | None = field(default=None, init=False)
    _medium: str = field(default=UNKNOWN, init=False)
    _memory: dict[str, str] = field(default_factory=dict, init=False)

    async def probe(self) -> bool:
        """Return backend availability, probing only on first use."""
        if self._available is not None:
            return self._available
        if self.backend is None:
            self._latch(available=False)
            return False

        for attempt in range(1, self.probe_attempts + 1):
            test_key = f"{self.namespace}test_{int(time.time() * 1000)}"
            test_value = f"test_{attempt}"
            try:
                retrieved = await asyncio.wait_for(
                    self._round_trip(self.backend, test_key, test_value),
                    timeout=self.probe_timeout_seconds,
                )
            except Exception as exc:  # noqa: BLE001
                _logger.warning(
                    "Storage probe attempt %s/%s failed: %r",
                    attempt,
                    self.probe_attempts,
                    exc,
                )
            else:
                if retrieved == test_value:
                    self._latch(available=True)
                    _logger.info("Persistent storage available (attempt %s)", attempt)
                    return True
                _logger.warning(
                    "Storage probe attempt %s/%s read back %r",
                    attempt,
                    self.probe_attempts,
                    retrieved,
                )
            if attempt < self.probe_attempts:
                await asyncio.sleep(self.probe_retry_delay_seconds * attempt)

        self._latch(available=False)
        _logger.warning("Persistent storage unavailable, using memory storage")
        return False

    async def retest(self) -> bool:
        """Discard the latched verdict and probe the backend again."""
        self._available = None
        self._medium = UNKNOWN
        result = await self.probe()
        if result:
            _logger.info("Storage retest succeeded, switched to persistent storage")
        else:
            _logger.info("Storage retest failed, remaining on memory storage")
        return result

    async def set(self, key: str, value: object) -> StorageResult:
        """Serialize and store a value, falling back to memory on failure."""
        try:
            encoded = json.dumps(value)
            if await self.probe():
                await self.backend.set_item(key, encoded)  # type: ignore[union-attr]
                return StorageResult(success=True, medium=PERSISTENT)
            self._memory[key] = encoded
            if self.debug:
                _logger.info("Saved %s using memory storage", key)
            return StorageResult(success=True, medium=MEMORY)
        except Exception as exc:  # noqa: BLE001
            _logger.error("Storage set failed for %s: %s", key, exc)

        try:
            self._memory[key] = json.dumps(value)
        except (TypeError, ValueError) as exc:
            _logger.error("Memory storage fallback failed for %s: %s", key, exc)
            return StorageResult(success=False, error=str(exc))
        return StorageResult(success=True, medium=MEMORY, fallback=True)

    async def get(self, key: str, default: object = None) -> object:
        """Return the decoded value for a key or ``default``."""
        try:
            if await self.probe():
                encoded = await self.backend.get_item(key)  # type: ignore[union-attr]
            else:
                encoded = self._memory.get(key)
            return json.loads(encoded) if encoded is not None else default
        except Exception as exc:  # noqa: BLE001
            _logger.error("Storage get failed for %s: %s", key, exc)

        try:
            encoded = self._memory.get(key)
            return json.loads(encoded) if encoded is not None else default
        except ValueError as exc:
            _logger.error("Memory storage fallback failed for %s: %s", key, exc)
            return default

    async def remove(self, key: str) -> StorageResult:
        """Delete a key from both media."""
        return await self.remove_many([key])

    async def remove_many(self, keys: list[str]) -> StorageResult:
        """Delete keys from both media, best effort."""
        for key in keys:
            self._memory.pop(key, None)
        if self.backend is None:
            return StorageResult(success=True, medium=self._medium)
        try:
            await self.backend.multi_remove(list(keys))
        except Exception as exc:  # noqa: BLE001
            _logger.error("Storage remove failed for %s: %s", keys, exc)
            return StorageResult(success=False, medium=self._medium, error=str(exc))
        return StorageResult(success=True, medium=self._medium)

    async def clear_all(self) -> StorageResult:
        """Wipe both media and forget the latched availability."""
        self._memory.clear()
        error = None
        if self.backend is not None:
            try:
                await self.backend.clear()
            except Exception as exc:  # noqa: BLE001
                _logger.error("Storage clear failed: %s", exc)
                error = str(exc)
        self._available = None
        self._medium = UNKNOWN
        return StorageResult(success=error is None, error=error)

    def status(self) -> StorageStatus:
        """Return the status surface for storage indicators."""
        return StorageStatus(
            medium=self._medium,
            available=self._available,
            memory_item_count=len(self._memory),
        )

    async def health(self) -> dict[str, object]:
        """Return status details, retesting the backend when on memory."""
        status = self.status()
        info: dict[str, object] = {
            "medium": status.medium,
            "available": status.available,
            "memory_item_count": status.memory_item_count,
            "checked_at": datetime.now(tz=UTC).isoformat(),
        }
        if status.medium == MEMORY:
            info["retest_successful"] = await self.retest()
        return info

    async def diagnose(self) -> DiagnosticsReport:
        """Run backend self-tests without touching the latched verdict."""
        checks = {
            "basic": await self._run_check(self._check_basic),
            "large_data": await self._run_check(self._check_large_value),
            "concurrent": await self._run_check(self._check_concurrent),
        }
        recommendations = []
        if not checks["basic"].passed:
            recommendations.append(
                Recommendation(
                    type="critical",
                    message="Persistent storage is not functional; "
                    "data is kept in memory only.",
                    action="Check storage permissions and available space.",
                )
            )
        if not checks["large_data"].passed:
            recommendations.append(
                Recommendation(
                    type="warning",
                    message="Large values may not be stored reliably.",
                    action="Keep stored records small.",
                )
            )
        if not checks["concurrent"].passed:
            recommendations.append(
                Recommendation(
                    type="warning",
                    message="Concurrent storage operations may be unreliable.",
                    action="Serialize writes to the same storage.",
                )
            )
        return DiagnosticsReport(
            timestamp=datetime.now(tz=UTC).isoformat(),
            checks=checks,
            recommendations=recommendations,
        )

    def _latch(self, *, available: bool) -> None:
        self._available = available
        self._medium = PERSISTENT if available else MEMORY

    @staticmethod
    async def _round_trip(backend: StorageBackend, key: str, value: str) -> str | None:
        await backend.set_item(key, value)
        retrieved = await backend.get_item(key)
        await backend.remove_item(key)
        return retrieved

    async def _run_check(
        self, check: "Callable[[StorageBackend], Awaitable[bool]]"
    ) -> DiagnosticCheck:
        if self.backend is None:
            return DiagnosticCheck(passed=False, error="no persistent backend")
        try:
            passed = await check(self.backend)
        except Exception as exc:  # noqa: BLE001
            return DiagnosticCheck(passed=False, error=str(exc))
        return DiagnosticCheck(passed=passed)

    @staticmethod
    async def _check_basic(backend: StorageBackend) -> bool:
        value = f"diagnostic_test_{int(time.time() * 1000)}"
        retrieved = await StorageAdapter._round_trip(
            backend, f"{_DIAGNOSTICS_PREFIX}basic_test", value
        )
        return retrieved == value

    @staticmethod
    async def _check_large_value(backend: StorageBackend) -> bool:
        value = "x" * _LARGE_VALUE_SIZE
        retrieved = await StorageAdapter._round_trip(
            backend, f"{_DIAGNOSTICS_PREFIX}large_test", value
        )
        return retrieved == value

    @staticmethod
    async def _check_concurrent(backend: StorageBackend) -> bool:
        keys = [f"{_DIAGNOSTICS_PREFIX}concurrent_{i}" for i in range(_CONCURRENT_KEYS)]
        await asyncio.gather(
            *(backend.set_item(key, f"test_value_{i}") for i, key in enumerate(keys))
        )
        values = await asyncio.gather(*(backend.get_item(key) for key in keys))
        await backend.multi_remove(keys)
        return all(value == f"test_value_{i}" for i, value in enumerate(values))
