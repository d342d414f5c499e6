"""Shared test fixtures."""

import asyncio
import copy
from dataclasses import dataclass, field

import pytest

from code_cup.config import Settings
from code_cup.containers import AppContainer, build_container
from code_cup.domain.drinks import Coffee
from code_cup.domain.storage import PERSISTENT, StorageResult
from code_cup.services.app_state import AppStateStore
from code_cup.services.persistence import KeyValueStorage, PersistenceService
from code_cup.services.storage import StorageBackend


@dataclass
class InMemoryStorageBackend(StorageBackend):
    """In-memory backend that can be switched into a failing mode."""

    items: dict[str, str] = field(default_factory=dict)
    fail: bool = False
    delay_seconds: float = 0.0
    set_calls: int = 0
    cleared: int = 0

    async def get_item(self, key: str) -> str | None:
        self._check()
        return self.items.get(key)

    async def set_item(self, key: str, value: str) -> None:
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        self.set_calls += 1
        self._check()
        self.items[key] = value

    async def remove_item(self, key: str) -> None:
        self._check()
        self.items.pop(key, None)

    async def multi_remove(self, keys: list[str]) -> None:
        self._check()
        for key in keys:
            self.items.pop(key, None)

    async def clear(self) -> None:
        self._check()
        self.cleared += 1
        self.items.clear()

    def _check(self) -> None:
        if self.fail:
            raise OSError("storage unavailable")


@dataclass
class ScriptedStorage(KeyValueStorage):
    """Key-value storage that fails or raises for chosen keys."""

    values: dict[str, object] = field(default_factory=dict)
    failing_keys: set[str] = field(default_factory=set)
    raising_keys: set[str] = field(default_factory=set)

    async def set(self, key: str, value: object) -> StorageResult:
        if key in self.raising_keys:
            raise RuntimeError(f"cannot write {key}")
        if key in self.failing_keys:
            return StorageResult(success=False, error="write failed")
        self.values[key] = copy.deepcopy(value)
        return StorageResult(success=True, medium=PERSISTENT)

    async def get(self, key: str, default: object = None) -> object:
        if key in self.raising_keys:
            raise RuntimeError(f"cannot read {key}")
        return copy.deepcopy(self.values.get(key, default))

    async def clear_all(self) -> StorageResult:
        self.values.clear()
        return StorageResult(success=True)


ESPRESSO = Coffee(id="1", name="Espresso", price=5.0, category="Hot")
LATTE = Coffee(id="2", name="Latte", price=3.5, category="Hot")


@pytest.fixture
def settings() -> Settings:
    return Settings(
        admin_token="admin-token",
        storage_backend="memory",
        autosave_interval_seconds=0.01,
        probe_timeout_seconds=0.5,
        probe_retry_delay_seconds=0.0,
    )


@pytest.fixture
def backend() -> InMemoryStorageBackend:
    return InMemoryStorageBackend()


@pytest.fixture
def scripted_storage() -> ScriptedStorage:
    return ScriptedStorage()


@pytest.fixture
def persistence_service(scripted_storage: ScriptedStorage) -> PersistenceService:
    return PersistenceService(storage=scripted_storage)


@pytest.fixture
def store(persistence_service: PersistenceService) -> AppStateStore:
    return AppStateStore(persistence=persistence_service)


@pytest.fixture
def container(settings: Settings, backend: InMemoryStorageBackend) -> AppContainer:
    return build_container(settings, backend=backend)
