"""Pydantic models for admin request bodies."""

from typing import Literal

from pydantic import BaseModel


class ImportRequest(BaseModel):
    """Backup text produced by the export endpoint."""

    data: str


class LifecycleRequest(BaseModel):
    """App lifecycle transition."""

    state: Literal["active", "inactive", "background"]
