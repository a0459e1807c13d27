"""Key-value slots that hold a serialized action queue.

A store only moves opaque text in and out of a named slot; it knows nothing
about actions. Three backends are provided:

- ``MemoryQueueStore``: process-local dict (tests, ephemeral queues).
- ``JsonFileQueueStore``: one ``<key>.json`` file per slot under a root
  directory (default ``./.spend_sync``, override with ``SPEND_SYNC_QUEUE_DIR``).
  Writes target ``.tmp`` first and then ``os.replace`` into place, so a crash
  mid-write leaves the previous contents intact.
- ``SqlQueueStore``: the ``queue_slots`` table from ``libs/db``.
"""

from __future__ import annotations

import contextlib
import os
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

from db.client import session_scope
from db.models.ledger import QueueSlot

_KEY_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


@runtime_checkable
class QueueStore(Protocol):
    """Minimal key-value slot interface used by :class:`ActionQueue`."""

    def read(self, key: str) -> str | None: ...

    def write(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


def _validate_key(key: str) -> str:
    """Restrict slot keys to a filename-safe alphabet (no path traversal)."""

    if not _KEY_RE.fullmatch(key) or key in {".", ".."}:
        raise ValueError(f"Invalid queue key: {key!r} (allowed: letters, digits, _ . -)")
    return key


class MemoryQueueStore:
    """Dict-backed store; contents live as long as the instance."""

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def read(self, key: str) -> str | None:
        return self._slots.get(key)

    def write(self, key: str, value: str) -> None:
        self._slots[key] = value

    def delete(self, key: str) -> None:
        self._slots.pop(key, None)


def default_queue_dir() -> Path:
    """Return the queue directory.

    Default: ``./.spend_sync`` under the current working directory.
    Override: ``SPEND_SYNC_QUEUE_DIR`` environment variable.
    """

    root = os.getenv("SPEND_SYNC_QUEUE_DIR")
    if root and root.strip():
        return Path(root).expanduser().resolve()
    return (Path.cwd() / ".spend_sync").resolve()


class JsonFileQueueStore:
    """File-per-slot store with atomic replacement on write."""

    def __init__(self, root: Path | str | None = None) -> None:
        self.root = Path(root).expanduser().resolve() if root is not None else default_queue_dir()

    def _path(self, key: str) -> Path:
        return self.root / f"{_validate_key(key)}.json"

    def read(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            tmp.write_text(value, encoding="utf-8")
            os.replace(tmp, path)
        except Exception:
            with contextlib.suppress(FileNotFoundError):
                tmp.unlink()
            raise

    def delete(self, key: str) -> None:
        with contextlib.suppress(FileNotFoundError):
            self._path(key).unlink()


class SqlQueueStore:
    """Store backed by the ``queue_slots`` table (one row per key).

    Each call runs in its own short transaction via ``session_scope``.
    """

    def __init__(self, *, database_url: str | None = None) -> None:
        self.database_url = database_url

    def read(self, key: str) -> str | None:
        with session_scope(database_url=self.database_url) as session:
            slot = session.get(QueueSlot, key)
            return slot.value if slot is not None else None

    def write(self, key: str, value: str) -> None:
        with session_scope(database_url=self.database_url) as session:
            slot = session.get(QueueSlot, key)
            now = datetime.now(UTC)
            if slot is None:
                session.add(QueueSlot(key=key, value=value, updated_at=now))
            else:
                slot.value = value
                slot.updated_at = now

    def delete(self, key: str) -> None:
        with session_scope(database_url=self.database_url) as session:
            slot = session.get(QueueSlot, key)
            if slot is not None:
                session.delete(slot)


__all__ = [
    "QueueStore",
    "MemoryQueueStore",
    "JsonFileQueueStore",
    "SqlQueueStore",
    "default_queue_dir",
]
