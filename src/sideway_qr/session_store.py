"""Durable storage for the single session credential."""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from .errors import StorageError
from .utils.logger import get_logger

NAMESPACE = "cookies"
CREDENTIAL_KEY = "cookie"

log = get_logger("session_store")


class SessionStore(Protocol):
    """Async key-value holder of the current credential."""

    async def get(self) -> Optional[str]:
        """Return the stored credential, or None."""

    async def set(self, credential: str) -> None:
        """Replace the stored credential."""

    async def clear(self) -> None:
        """Forget the stored credential."""


class FileSessionStore:
    """Persist the credential as JSON under ``<data_dir>/cookies.json``.

    Calls are serialised with an ``asyncio.Lock`` so that concurrent ``set``
    calls resolve last-writer-wins and ``get`` never observes a half-finished
    write. File I/O runs in a worker thread.
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.path = Path(data_dir) / f"{NAMESPACE}.json"
        self._lock = asyncio.Lock()

    async def get(self) -> Optional[str]:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        value = data.get(CREDENTIAL_KEY)
        return value if isinstance(value, str) else None

    async def set(self, credential: str) -> None:
        async with self._lock:
            await asyncio.to_thread(self._save, {CREDENTIAL_KEY: credential})
        log.debug("Stored session credential in %s", self.path, layer="debug")

    async def clear(self) -> None:
        async with self._lock:
            await asyncio.to_thread(self._remove)
        log.debug("Cleared session credential at %s", self.path, layer="debug")

    def _load(self) -> dict:
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to read credential store {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Credential store {self.path} does not hold a JSON object")
        return data

    def _save(self, data: dict) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{NAMESPACE}.", suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle)
                os.replace(tmp_name, self.path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write credential store {self.path}: {exc}") from exc

    def _remove(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Unable to clear credential store {self.path}: {exc}") from exc


class MemorySessionStore:
    """Process-local store with the same contract; nothing survives a restart."""

    def __init__(self, credential: Optional[str] = None) -> None:
        self._credential = credential

    async def get(self) -> Optional[str]:
        return self._credential

    async def set(self, credential: str) -> None:
        self._credential = credential

    async def clear(self) -> None:
        self._credential = None
