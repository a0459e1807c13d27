"""Typed queued actions for the durable action queue.

Each user-initiated mutation that may need replaying is one of four kinds,
modelled as a pydantic discriminated union on ``type`` with its own payload
shape. Entries read back from storage whose ``type`` (or payload) no longer
matches any kind are loaded as :class:`UnrecognizedAction` so they can be
quarantined rather than dropped.

The persisted JSON shape is
``{"id", "type", "payload", "timestamp", "retries"}``; payload keys use the
camelCase names already present in stored device data.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Literal, assert_never

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

type ActionType = Literal["status_update", "note_update", "shortlist_add", "reminder_dismiss"]

ACTION_TYPES: tuple[str, ...] = (
    "status_update",
    "note_update",
    "shortlist_add",
    "reminder_dismiss",
)

type ApplicationStatus = Literal["considering", "applied", "approved", "rejected"]


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class _Payload(BaseModel):
    # Values are stored as given; unknown keys are kept.
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)


class StatusUpdatePayload(_Payload):
    card_id: str = Field(alias="cardId", min_length=1)
    status: ApplicationStatus


class NoteUpdatePayload(_Payload):
    application_id: str = Field(alias="id", min_length=1)
    notes: str


class ShortlistAddPayload(_Payload):
    card_id: str = Field(alias="cardId", min_length=1)


class ReminderDismissPayload(_Payload):
    reminder_id: str = Field(alias="id", min_length=1)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------


class _QueuedActionBase(BaseModel):
    # Envelope keys written by other client versions are carried through.
    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    id: str = Field(min_length=1)
    # Epoch milliseconds at enqueue time.
    enqueued_at: int = Field(alias="timestamp")
    retry_count: int = Field(default=0, alias="retries", ge=0)

    def to_stored(self) -> dict[str, Any]:
        """Return the JSON-ready mapping written to the queue slot."""

        return self.model_dump(mode="json", by_alias=True)


class StatusUpdateAction(_QueuedActionBase):
    type: Literal["status_update"] = "status_update"
    payload: StatusUpdatePayload


class NoteUpdateAction(_QueuedActionBase):
    type: Literal["note_update"] = "note_update"
    payload: NoteUpdatePayload


class ShortlistAddAction(_QueuedActionBase):
    type: Literal["shortlist_add"] = "shortlist_add"
    payload: ShortlistAddPayload


class ReminderDismissAction(_QueuedActionBase):
    type: Literal["reminder_dismiss"] = "reminder_dismiss"
    payload: ReminderDismissPayload


class UnrecognizedAction(_QueuedActionBase):
    """A stored entry that no longer matches any known kind."""

    type: str
    payload: Any = None


KnownAction = Annotated[
    StatusUpdateAction | NoteUpdateAction | ShortlistAddAction | ReminderDismissAction,
    Field(discriminator="type"),
]

type QueuedAction = (
    StatusUpdateAction
    | NoteUpdateAction
    | ShortlistAddAction
    | ReminderDismissAction
    | UnrecognizedAction
)

_KNOWN_ADAPTER: TypeAdapter[Any] = TypeAdapter(KnownAction)


def build_action(
    action_type: str,
    payload: Mapping[str, Any] | BaseModel,
    *,
    action_id: str,
    enqueued_at: int,
) -> StatusUpdateAction | NoteUpdateAction | ShortlistAddAction | ReminderDismissAction:
    """Validate ``payload`` for ``action_type`` and return a fresh action.

    Raises ``pydantic.ValidationError`` when the payload does not fit the
    kind. Callers check ``action_type`` against :data:`ACTION_TYPES` first.
    """

    return _KNOWN_ADAPTER.validate_python(
        {
            "id": action_id,
            "type": action_type,
            "timestamp": enqueued_at,
            "retries": 0,
            "payload": payload,
        }
    )


def parse_stored_action(raw: Mapping[str, Any]) -> QueuedAction:
    """Parse one stored entry, falling back to :class:`UnrecognizedAction`.

    Raises ``pydantic.ValidationError`` only when the entry lacks the common
    envelope (``id``/``timestamp``/``retries``/``type``).
    """

    if raw.get("type") in ACTION_TYPES:
        try:
            return _KNOWN_ADAPTER.validate_python(raw)
        except ValidationError:
            pass
    return UnrecognizedAction.model_validate(raw)


@dataclass(frozen=True, slots=True)
class ActionHandlers:
    """One handler per action kind.

    Each handler performs the backend call for its payload and returns on
    success or raises on failure. Handlers that wrap network I/O should apply
    their own timeout; a hung handler stalls the rest of the drain pass.
    """

    status_update: Callable[[StatusUpdatePayload], object]
    note_update: Callable[[NoteUpdatePayload], object]
    shortlist_add: Callable[[ShortlistAddPayload], object]
    reminder_dismiss: Callable[[ReminderDismissPayload], object]

    def dispatch(
        self,
        action: StatusUpdateAction | NoteUpdateAction | ShortlistAddAction | ReminderDismissAction,
    ) -> None:
        match action:
            case StatusUpdateAction():
                self.status_update(action.payload)
            case NoteUpdateAction():
                self.note_update(action.payload)
            case ShortlistAddAction():
                self.shortlist_add(action.payload)
            case ReminderDismissAction():
                self.reminder_dismiss(action.payload)
            case _:
                assert_never(action)


__all__ = [
    "ActionType",
    "ACTION_TYPES",
    "ApplicationStatus",
    "StatusUpdatePayload",
    "NoteUpdatePayload",
    "ShortlistAddPayload",
    "ReminderDismissPayload",
    "StatusUpdateAction",
    "NoteUpdateAction",
    "ShortlistAddAction",
    "ReminderDismissAction",
    "UnrecognizedAction",
    "KnownAction",
    "QueuedAction",
    "build_action",
    "parse_stored_action",
    "ActionHandlers",
]
