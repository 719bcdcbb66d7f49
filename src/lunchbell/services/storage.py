"""
Snapshot persistence.

Registries persist by replacing their whole snapshot, never by patching it.
JsonFileStore writes to a temporary file in the target directory and then
renames it over the old file, so a reader only ever sees the previous complete
snapshot or the new complete snapshot.

File I/O is blocking, so saves run in a worker thread to keep the event loop
free for request handling.
"""

import asyncio
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Protocol

from lunchbell.domain.errors import PersistenceWriteError

logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    """Anything that can load and atomically replace one JSON-like snapshot."""

    def load(self) -> dict[str, Any]: ...

    async def save(self, snapshot: dict[str, Any]) -> None: ...


class JsonFileStore:
    """Stores one snapshot as a pretty-printed JSON object on disk."""

    def __init__(self, path: str | os.PathLike[str], indent: int = 3) -> None:
        self.path = Path(path)
        self.indent = indent

    def load(self) -> dict[str, Any]:
        """Read the snapshot, or start empty when it is missing or unreadable.

        An unreadable file is moved aside to `<name>.corrupt` so the next save
        does not overwrite what is left of it.
        """
        if not self.path.exists():
            logger.info("No snapshot at %s, starting empty", self.path)
            return {}
        try:
            with self.path.open(encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("snapshot is not a JSON object")
        except (OSError, ValueError) as exc:
            logger.warning("Unreadable snapshot %s, starting empty: %s", self.path, exc)
            self._set_aside()
            return {}
        return data

    def _set_aside(self) -> None:
        corrupt = self.path.with_name(f"{self.path.name}.corrupt")
        try:
            os.replace(self.path, corrupt)
        except OSError as exc:
            logger.warning("Could not move %s aside: %s", self.path, exc)
        else:
            logger.warning("Moved unreadable snapshot to %s", corrupt)

    async def save(self, snapshot: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write, snapshot)

    def _write(self, snapshot: dict[str, Any]) -> None:
        directory = self.path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(snapshot, fh, indent=self.indent)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise PersistenceWriteError(str(self.path), str(exc)) from exc
