"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from code_cup.adapters.file_storage_backend import FileStorageBackend
from code_cup.adapters.supabase_storage_backend import SupabaseStorageBackend
from code_cup.config import Settings, parse_storage_backend
from code_cup.services.app_state import AppStateStore
from code_cup.services.persistence import PersistenceService
from code_cup.services.storage import StorageAdapter, StorageBackend
from code_cup.services.sync import BackgroundSync


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    storage: StorageAdapter
    persistence_service: PersistenceService
    app_store: AppStateStore
    background_sync: BackgroundSync
    close_resources: Callable[[], Awaitable[None]]


def build_storage_backend(settings: Settings) -> StorageBackend | None:
    """Create the persistent backend named in the settings."""
    backend = parse_storage_backend(settings.storage_backend)
    if backend == "memory":
        return None
    if backend == "supabase":
        if not settings.supabase_url or not settings.supabase_service_key:
            raise ValueError(
                "Supabase storage needs SUPABASE_URL and SUPABASE_SERVICE_KEY"
            )
        client = create_client(settings.supabase_url, settings.supabase_service_key)
        return SupabaseStorageBackend(
            client=client,
            table=settings.supabase_table,
            namespace=settings.storage_namespace,
        )
    return FileStorageBackend.create(settings.storage_path)


def build_container(
    settings: Settings | None = None, backend: StorageBackend | None = None
) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    if backend is None:
        backend = build_storage_backend(resolved_settings)
    storage = StorageAdapter(
        backend=backend,
        namespace=resolved_settings.storage_namespace,
        probe_timeout_seconds=resolved_settings.probe_timeout_seconds,
        probe_attempts=resolved_settings.probe_attempts,
        probe_retry_delay_seconds=resolved_settings.probe_retry_delay_seconds,
        debug=resolved_settings.debug,
    )
    persistence_service = PersistenceService(
        storage=storage, namespace=resolved_settings.storage_namespace
    )
    app_store = AppStateStore(
        persistence=persistence_service, app_version=resolved_settings.app_version
    )
    background_sync = BackgroundSync(
        store=app_store,
        interval_seconds=resolved_settings.autosave_interval_seconds,
    )

    async def close_resources() -> None:
        await background_sync.close()
        await app_store.flush()

    return AppContainer(
        settings=resolved_settings,
        storage=storage,
        persistence_service=persistence_service,
        app_store=app_store,
        background_sync=background_sync,
        close_resources=close_resources,
    )
