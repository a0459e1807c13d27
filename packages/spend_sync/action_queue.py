"""Durable, retrying action queue for user mutations made while offline.

A mutation accepted by the UI is enqueued and the caller returns at once. A
later :meth:`ActionQueue.drain` replays the queue through caller-supplied
handlers: successes are removed, failures stay in place with
``retry_count + 1``. Once an action reaches the retry ceiling it is
quarantined: skipped by every subsequent drain and reported by
:meth:`ActionQueue.get_failed_actions` until an operator removes or retries
it. Delivery is at-least-once; a handler that succeeds server-side but whose
success is lost before removal will be invoked again.

Concurrency (within one process):

- ``drain`` is serialized by an instance lock. A second caller blocks until
  the first pass finishes and then drains the updated queue, so a handler is
  never invoked twice for the same action by overlapping passes.
- ``enqueue`` and every per-action update are read-modify-write cycles on the
  store, serialized by a separate lock so an enqueue during a drain is never
  lost. The store lock is not held while handlers run.
- Handlers must not call ``drain`` on the same queue.
"""

from __future__ import annotations

import json
import os
import threading
import time
import uuid
from collections.abc import Callable, Mapping
from typing import Any, NamedTuple

from pydantic import BaseModel, ValidationError

from .actions import (
    ACTION_TYPES,
    ActionHandlers,
    QueuedAction,
    UnrecognizedAction,
    build_action,
    parse_stored_action,
)
from .logging_setup import get_logger
from .queue_store import QueueStore

DEFAULT_QUEUE_KEY = "offline_queue"
DEFAULT_MAX_RETRIES = 3

_logger = get_logger("spend_sync.action_queue")


class ActionQueueError(Exception):
    """Base class for action queue errors."""


class UnknownActionTypeError(ActionQueueError, ValueError):
    """Raised by ``enqueue`` for a type outside the known action kinds."""


class DrainResult(NamedTuple):
    """Counts reported by a single drain pass.

    ``processed`` counts actions delivered and removed. ``failed`` counts
    actions that are quarantined at the end of the pass (already at the
    ceiling, reaching it during this pass, or unrecognized).
    """

    processed: int
    failed: int


def _max_retries_from_env() -> int:
    raw = os.getenv("SPEND_SYNC_MAX_RETRIES")
    if raw is None or not raw.strip():
        return DEFAULT_MAX_RETRIES
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        _logger.warning(
            "queue:invalid SPEND_SYNC_MAX_RETRIES=%r; using %d", raw, DEFAULT_MAX_RETRIES
        )
        return DEFAULT_MAX_RETRIES
    return value


def _new_action_id(now_ms: int) -> str:
    # Millisecond timestamp plus a random suffix; unique per device.
    return f"{now_ms}-{uuid.uuid4().hex[:9]}"


class ActionQueue:
    """Queue manager bound to one slot of a :class:`QueueStore`.

    Parameters
    ----------
    store:
        Backend holding the serialized queue.
    key:
        Slot name within the store (default ``"offline_queue"``).
    max_retries:
        Retry ceiling. Defaults to ``SPEND_SYNC_MAX_RETRIES`` when set,
        otherwise 3.
    clock:
        Returns the current time in seconds; used for ids and ``enqueued_at``.
    """

    def __init__(
        self,
        store: QueueStore,
        *,
        key: str = DEFAULT_QUEUE_KEY,
        max_retries: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if max_retries is not None and max_retries <= 0:
            raise ValueError("max_retries must be a positive integer")
        self._store = store
        self.key = key
        self._max_retries = max_retries if max_retries is not None else _max_retries_from_env()
        self._clock = clock
        self._store_lock = threading.RLock()
        self._drain_lock = threading.Lock()

    @property
    def max_retries(self) -> int:
        return self._max_retries

    # ------------------------------------------------------------------
    # Storage round-trip
    # ------------------------------------------------------------------

    def _load(self) -> list[QueuedAction]:
        text = self._store.read(self.key)
        if not text:
            return []
        try:
            raw = json.loads(text)
        except json.JSONDecodeError:
            _logger.error("queue:corrupt_slot key=%s; treating as empty", self.key, exc_info=True)
            return []
        if not isinstance(raw, list):
            _logger.error(
                "queue:corrupt_slot key=%s expected list got %s; treating as empty",
                self.key,
                type(raw).__name__,
            )
            return []

        actions: list[QueuedAction] = []
        for pos, entry in enumerate(raw):
            if not isinstance(entry, Mapping):
                _logger.error("queue:invalid_entry key=%s pos=%d dropped", self.key, pos)
                continue
            try:
                actions.append(parse_stored_action(entry))
            except ValidationError:
                _logger.error(
                    "queue:invalid_entry key=%s pos=%d dropped", self.key, pos, exc_info=True
                )
        return actions

    def _save(self, actions: list[QueuedAction]) -> None:
        text = json.dumps(
            [a.to_stored() for a in actions], ensure_ascii=False, separators=(",", ":")
        )
        self._store.write(self.key, text)

    def _mutate(
        self, fn: Callable[[list[QueuedAction]], list[QueuedAction]]
    ) -> list[QueuedAction]:
        with self._store_lock:
            updated = fn(self._load())
            self._save(updated)
            return updated

    def _set_retry_count(self, action_id: str, value: Callable[[int], int]) -> int | None:
        """Rewrite one action's retry count in place; ``None`` if it is gone."""

        result: int | None = None

        def _apply(queue: list[QueuedAction]) -> list[QueuedAction]:
            nonlocal result
            out: list[QueuedAction] = []
            for a in queue:
                if a.id == action_id:
                    a = a.model_copy(update={"retry_count": value(a.retry_count)})
                    result = a.retry_count
                out.append(a)
            return out

        self._mutate(_apply)
        return result

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def enqueue(self, action_type: str, payload: Mapping[str, Any] | BaseModel) -> QueuedAction:
        """Append a new action with ``retry_count = 0`` and return it.

        Raises :class:`UnknownActionTypeError` for an unknown ``action_type``
        and ``pydantic.ValidationError`` for a payload that does not fit it;
        nothing is queued in either case.
        """

        if action_type not in ACTION_TYPES:
            raise UnknownActionTypeError(
                f"Unsupported action type: {action_type!r}. Allowed: {list(ACTION_TYPES)}"
            )
        now_ms = int(self._clock() * 1000)
        action = build_action(
            action_type, payload, action_id=_new_action_id(now_ms), enqueued_at=now_ms
        )
        self._mutate(lambda queue: [*queue, action])
        _logger.debug("queue:enqueued key=%s id=%s type=%s", self.key, action.id, action.type)
        return action

    def drain(self, handlers: ActionHandlers) -> DrainResult:
        """Replay the current queue snapshot once, in insertion order.

        Actions at the ceiling are skipped and counted as failed. Unrecognized
        actions are quarantined immediately. Every other action is handed to
        its handler: success removes it; an exception increments its retry
        count and leaves it in place.
        """

        with self._drain_lock:
            with self._store_lock:
                snapshot = self._load()

            processed = 0
            failed = 0
            for action in snapshot:
                if action.retry_count >= self._max_retries:
                    failed += 1
                    continue

                if isinstance(action, UnrecognizedAction):
                    self._set_retry_count(action.id, lambda _n: self._max_retries)
                    _logger.warning(
                        "queue:quarantined_unrecognized key=%s id=%s type=%r",
                        self.key,
                        action.id,
                        action.type,
                    )
                    failed += 1
                    continue

                try:
                    handlers.dispatch(action)
                except Exception:
                    _logger.warning(
                        "queue:handler_failed key=%s id=%s type=%s attempt=%d",
                        self.key,
                        action.id,
                        action.type,
                        action.retry_count + 1,
                        exc_info=True,
                    )
                    retries = self._set_retry_count(action.id, lambda n: n + 1)
                    if retries is not None and retries >= self._max_retries:
                        _logger.warning(
                            "queue:quarantined key=%s id=%s type=%s retries=%d",
                            self.key,
                            action.id,
                            action.type,
                            retries,
                        )
                        failed += 1
                    continue

                self.remove(action.id)
                processed += 1

            _logger.info(
                "queue:drained key=%s snapshot=%d processed=%d failed=%d",
                self.key,
                len(snapshot),
                processed,
                failed,
            )
            return DrainResult(processed=processed, failed=failed)

    def pending_actions(self) -> list[QueuedAction]:
        """Return every queued action (including quarantined ones), in order."""

        with self._store_lock:
            return self._load()

    def get_failed_actions(self) -> list[QueuedAction]:
        """Return quarantined actions (``retry_count >= max_retries``)."""

        return [a for a in self.pending_actions() if a.retry_count >= self._max_retries]

    def has_failed_actions(self) -> bool:
        return bool(self.get_failed_actions())

    def remove(self, action_id: str) -> bool:
        """Remove one action by id; return whether it was present."""

        removed = False

        def _apply(queue: list[QueuedAction]) -> list[QueuedAction]:
            nonlocal removed
            kept = [a for a in queue if a.id != action_id]
            removed = len(kept) != len(queue)
            return kept

        self._mutate(_apply)
        return removed

    def retry(self, action_id: str) -> bool:
        """Reset an action's retry count to 0 so the next drain re-attempts it."""

        return self._set_retry_count(action_id, lambda _n: 0) is not None

    def clear_queue(self) -> None:
        """Drop the whole slot (logout / data reset)."""

        with self._store_lock:
            self._store.delete(self.key)

    def __len__(self) -> int:
        return len(self.pending_actions())


__all__ = [
    "DEFAULT_QUEUE_KEY",
    "DEFAULT_MAX_RETRIES",
    "ActionQueueError",
    "UnknownActionTypeError",
    "DrainResult",
    "ActionQueue",
]
