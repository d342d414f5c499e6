"""Local JSON file backend for the storage adapter."""

import asyncio
import json
import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path

from code_cup.services.storage import StorageBackend


@dataclass
class FileStorageBackend(StorageBackend):
    """Stores every key in one JSON document on local disk."""

    path: Path
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False
    )

    @classmethod
    def create(cls, path: str | Path) -> "FileStorageBackend":
        """Create a backend for a path, expanding the user directory."""
        return cls(path=Path(path).expanduser())

    async def get_item(self, key: str) -> str | None:
        """Return the stored string for a key."""
        document = await asyncio.to_thread(self._read)
        value = document.get(key)
        return value if isinstance(value, str) else None

    async def set_item(self, key: str, value: str) -> None:
        """Store a string under a key."""
        await asyncio.to_thread(self._update, {key: value}, ())

    async def remove_item(self, key: str) -> None:
        """Delete a key."""
        await asyncio.to_thread(self._update, {}, (key,))

    async def multi_remove(self, keys: list[str]) -> None:
        """Delete several keys."""
        await asyncio.to_thread(self._update, {}, tuple(keys))

    async def clear(self) -> None:
        """Empty the document."""
        await asyncio.to_thread(self._reset)

    def _read(self) -> dict[str, object]:
        try:
            with self.path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except FileNotFoundError:
            return {}
        if not isinstance(document, dict):
            raise ValueError(f"Storage file {self.path} is not a JSON object")
        return document

    def _update(self, changes: dict[str, str], removals: tuple[str, ...]) -> None:
        with self._lock:
            document = self._read()
            document.update(changes)
            for key in removals:
                document.pop(key, None)
            self._write(document)

    def _reset(self) -> None:
        with self._lock:
            self._write({})

    def _write(self, document: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
