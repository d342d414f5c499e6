"""Durable mirror of the app state over a fixed catalog of records."""

import asyncio
import copy
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from pydantic import ValidationError

from code_cup.domain.loyalty import EARNED, WELCOME_BONUS_POINTS
from code_cup.domain.profile import DEFAULT_PREFERENCES, DEFAULT_PROFILE
from code_cup.domain.snapshot import ExportSnapshot
from code_cup.domain.storage import StorageResult

_logger = logging.getLogger(__name__)

USER_PROFILE = "userProfile"
CART_ITEMS = "cartItems"
FAVORITES = "favorites"
STAMPS = "stamps"
POINTS = "points"
POINT_HISTORY = "pointHistory"
CURRENT_ORDERS = "currentOrders"
ORDER_HISTORY = "orderHistory"
USER_PREFERENCES = "userPreferences"
APP_INITIALIZED = "appInitialized"
LAST_APP_VERSION = "lastAppVersion"

CATALOG: dict[str, object] = {
    USER_PROFILE: DEFAULT_PROFILE,
    CART_ITEMS: [],
    FAVORITES: [],
    STAMPS: 0,
    POINTS: 0,
    POINT_HISTORY: [],
    CURRENT_ORDERS: [],
    ORDER_HISTORY: [],
    USER_PREFERENCES: DEFAULT_PREFERENCES,
    APP_INITIALIZED: False,
    LAST_APP_VERSION: "0.0.0",
}

# Slices written by a full-state save, in save order.
SNAPSHOT_SLICES = (
    USER_PROFILE,
    CART_ITEMS,
    STAMPS,
    POINTS,
    POINT_HISTORY,
    CURRENT_ORDERS,
    ORDER_HISTORY,
)

# Slices returned by a full-state load.
STATE_SLICES = (*SNAPSHOT_SLICES, FAVORITES, USER_PREFERENCES)


class KeyValueStorage(Protocol):
    """Storage interface consumed by the persistence service."""

    async def set(self, key: str, value: object) -> StorageResult:
        """Store a JSON-compatible value."""

    async def get(self, key: str, default: object = None) -> object:
        """Return a stored value or the default."""

    async def clear_all(self) -> StorageResult:
        """Wipe all stored values."""


class InvalidSnapshotError(ValueError):
    """Raised when an import payload is not a valid export."""


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a batch of independent save operations."""

    total: int
    success_count: int
    failures: list[str] = field(default_factory=list)

    @property
    def partial_success(self) -> bool:
        """Return True when at least one operation succeeded."""
        return self.success_count > 0

    @property
    def all_success(self) -> bool:
        """Return True when every operation succeeded."""
        return self.success_count == self.total


def default_value(name: str) -> object:
    """Return a fresh copy of a catalog default."""
    return copy.deepcopy(CATALOG[name])


@dataclass
class PersistenceService:
    """Save and load catalog records through the storage adapter."""

    storage: KeyValueStorage
    namespace: str = "@CodeCup:"

    def storage_key(self, name: str) -> str:
        """Return the namespaced storage key for a catalog name."""
        if name not in CATALOG:
            raise KeyError(f"Unknown catalog key: {name}")
        return f"{self.namespace}{name}"

    async def save(self, name: str, value: object) -> bool:
        """Store one catalog record."""
        result = await self.storage.set(self.storage_key(name), value)
        return result.success

    async def load(self, name: str) -> object:
        """Load one catalog record, falling back to its default."""
        return await self.storage.get(self.storage_key(name), default_value(name))

    async def save_batch(self, snapshot: Mapping[str, object]) -> BatchResult:
        """Save each state slice independently and count the successes."""
        success_count = 0
        failures: list[str] = []
        for name in SNAPSHOT_SLICES:
            try:
                saved = await self.save(name, snapshot.get(name))
            except Exception:
                _logger.exception("Failed to save %s", name)
                saved = False
            if saved:
                success_count += 1
            else:
                failures.append(name)

        result = BatchResult(
            total=len(SNAPSHOT_SLICES),
            success_count=success_count,
            failures=failures,
        )
        if failures:
            _logger.warning(
                "Partial save: %s/%s slices saved, failed: %s",
                success_count,
                result.total,
                ", ".join(failures),
            )
        return result

    async def save_all(self, snapshot: Mapping[str, object]) -> bool:
        """Save the state; succeed when at least half of the slices saved."""
        result = await self.save_batch(snapshot)
        return result.success_count >= result.total / 2

    async def load_all(self) -> dict[str, object] | None:
        """Load every state slice concurrently, or None if the batch fails."""
        try:
            values = await asyncio.gather(*(self.load(name) for name in STATE_SLICES))
        except Exception:
            _logger.exception("Failed to load app state")
            return None
        return dict(zip(STATE_SLICES, values, strict=True))

    async def seed_if_first_run(self, version: str) -> bool:
        """Write first-run defaults unless the initialized flag is set."""
        if await self.load(APP_INITIALIZED):
            return False

        _logger.info("Seeding initial app data")
        now = datetime.now(tz=UTC)
        welcome_entry = {
            "id": str(int(time.time() * 1000)),
            "date": now.isoformat(),
            "description": "Welcome bonus!",
            "points": WELCOME_BONUS_POINTS,
            "type": EARNED,
        }
        await asyncio.gather(
            self.save(USER_PROFILE, default_value(USER_PROFILE)),
            self.save(POINTS, WELCOME_BONUS_POINTS),
            self.save(POINT_HISTORY, [welcome_entry]),
            self.save(USER_PREFERENCES, default_value(USER_PREFERENCES)),
            self.save(APP_INITIALIZED, True),
            self.save(LAST_APP_VERSION, version),
        )
        return True

    async def migrate(self, current_version: str) -> bool:
        """Record a version change, running migrations in between."""
        last_version = str(await self.load(LAST_APP_VERSION))
        if last_version == current_version:
            return False
        _logger.info("Migrating data from %s to %s", last_version, current_version)
        await self.apply_migrations(last_version, current_version)
        await self.save(LAST_APP_VERSION, current_version)
        return True

    async def apply_migrations(self, from_version: str, to_version: str) -> None:
        """Transform stored records between versions.

        No stored format has changed yet, so there is nothing to transform.
        """

    async def export_snapshot(self) -> str | None:
        """Return the loaded state as JSON text with export metadata."""
        state = await self.load_all()
        if state is None:
            return None
        payload = {
            **state,
            "exportDate": datetime.now(tz=UTC).isoformat(),
            "appVersion": await self.load(LAST_APP_VERSION),
        }
        return json.dumps(payload, indent=2)

    async def import_snapshot(self, text: str) -> bool:
        """Validate an export and write it back into storage."""
        try:
            snapshot = ExportSnapshot.model_validate_json(text)
        except ValidationError as exc:
            raise InvalidSnapshotError(f"Invalid import data format: {exc}") from exc

        state = snapshot.state()
        saved = await self.save_all(state)
        await self.save(FAVORITES, state[FAVORITES])
        await self.save(USER_PREFERENCES, state[USER_PREFERENCES])
        if saved:
            _logger.info("User data imported from export of %s", snapshot.export_date)
        return saved

    async def wipe_all(self) -> bool:
        """Remove every stored record."""
        result = await self.storage.clear_all()
        if not result.success:
            _logger.warning("Some data may not have been cleared: %s", result.error)
        return result.success
