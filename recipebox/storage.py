from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

from werkzeug.utils import secure_filename

logger = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    """Protocol describing the durable store the recipe blob lives in."""

    def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or ``None`` when absent."""

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""


class MemoryKeyValueStore:
    """Dictionary backed store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class FileKeyValueStore:
    """Stores every key as a file inside ``directory``.

    Writes go to a temporary file that replaces the target in one step, so a
    reader never sees a partially written value.
    """

    def __init__(self, directory: Union[str, os.PathLike]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def get(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def set(self, key: str, value: str) -> None:
        self._directory.mkdir(parents=True, exist_ok=True)
        path = self._path_for(key)
        fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("Wrote %d characters to %s", len(value), path)

    def remove(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    def _path_for(self, key: str) -> Path:
        name = secure_filename(key)
        if not name:
            raise ValueError(f"Cannot derive a file name from key {key!r}.")
        return self._directory / f"{name}.json"


__all__ = ["FileKeyValueStore", "KeyValueStore", "MemoryKeyValueStore"]
