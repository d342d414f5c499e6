"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

STORAGE_BACKENDS = {"file", "supabase", "memory"}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    admin_token: str
    app_version: str = "1.0.0"
    storage_backend: str = "file"
    storage_path: str = ".code_cup/storage.json"
    storage_namespace: str = "@CodeCup:"
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    supabase_table: str = "app_storage"
    autosave_interval_seconds: float = 30.0
    probe_timeout_seconds: float = 5.0
    probe_attempts: int = 3
    probe_retry_delay_seconds: float = 0.1
    debug: bool = False
    log_level: str = "INFO"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_storage_backend(raw: str | None) -> str:
    """Normalize the configured storage backend name."""
    if raw is None:
        return "file"
    cleaned = raw.strip().lower()
    if cleaned in {"", "local", "disk"}:
        return "file"
    if cleaned not in STORAGE_BACKENDS:
        raise ValueError(f"Unknown storage backend: {raw}")
    return cleaned
