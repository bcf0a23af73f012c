"""Meeting status state machine.

    recording -> processing -> review -> sent
                     |
                     +-> recording   (transcription failed)

Every status-changing write names a ``Trigger`` and goes through
``MeetingStore.transition``, which applies the table below as a
conditional update. Content edits never change status; ``check_edit``
decides whether an edit is allowed in the meeting's current state.
"""
import enum
from typing import Dict, FrozenSet, Tuple

from ..errors import ConflictError, ValidationError
from ..models.meeting import MeetingStatus


class Trigger(str, enum.Enum):
    START_PROCESSING = "start_processing"
    FINISH_PROCESSING = "finish_processing"
    ROLLBACK = "rollback"
    DELIVER = "deliver"


TRANSITIONS: Dict[Trigger, Tuple[FrozenSet[MeetingStatus], MeetingStatus]] = {
    Trigger.START_PROCESSING: (frozenset({MeetingStatus.recording}), MeetingStatus.processing),
    Trigger.FINISH_PROCESSING: (frozenset({MeetingStatus.processing}), MeetingStatus.review),
    Trigger.ROLLBACK: (frozenset({MeetingStatus.processing}), MeetingStatus.recording),
    Trigger.DELIVER: (frozenset({MeetingStatus.review}), MeetingStatus.sent),
}

# Position along the forward path, used to reason about regressions.
STATUS_ORDER = {
    MeetingStatus.recording: 0,
    MeetingStatus.processing: 1,
    MeetingStatus.review: 2,
    MeetingStatus.sent: 3,
}

CONTENT_FIELDS = frozenset({"transcript", "acta_content"})
REQUIRED_FIELDS = frozenset({"building_name", "attendees_count", "date", "duration"})


def sources(trigger: Trigger) -> FrozenSet[MeetingStatus]:
    return TRANSITIONS[trigger][0]


def target(trigger: Trigger) -> MeetingStatus:
    return TRANSITIONS[trigger][1]


def next_status(current: MeetingStatus, trigger: Trigger) -> MeetingStatus:
    """Return the status ``trigger`` leads to from ``current``.

    Raises ConflictError when the trigger is not legal in ``current``.
    """
    allowed, result = TRANSITIONS[trigger]
    current = MeetingStatus(current)
    if current not in allowed:
        raise ConflictError(
            f"Cannot {trigger.value.replace('_', ' ')} a meeting in '{current.value}' status",
            detail={"status": current.value, "trigger": trigger.value},
        )
    return result


def is_legal(current: MeetingStatus, new: MeetingStatus) -> bool:
    """True when ``current -> new`` is an edge of the graph (or a no-op)."""
    current, new = MeetingStatus(current), MeetingStatus(new)
    if current == new:
        return True
    return any(current in allowed and new == result for allowed, result in TRANSITIONS.values())


def check_edit(meeting, changes: dict) -> None:
    """Validate a content edit against the meeting's current state.

    Raises ConflictError for edits the state machine forbids and
    ValidationError for edits that would break a data invariant.
    """
    status = MeetingStatus(meeting.status)

    if "status" in changes:
        requested = changes["status"]
        if requested is None or MeetingStatus(requested) != status:
            raise ConflictError(
                "Status is changed by transcribing or sending a meeting, not by editing it",
                detail={"status": status.value, "requested": getattr(requested, "value", requested)},
            )

    edited = set(changes) - {"status"}
    if not edited:
        return

    if status == MeetingStatus.sent:
        raise ConflictError(
            "A sent meeting can no longer be edited",
            detail={"status": status.value, "fields": sorted(edited)},
        )
    if status == MeetingStatus.recording and edited & CONTENT_FIELDS:
        raise ConflictError(
            "Transcript and acta can only be edited once the meeting has been transcribed",
            detail={"status": status.value, "fields": sorted(edited & CONTENT_FIELDS)},
        )
    if status == MeetingStatus.processing and edited & CONTENT_FIELDS:
        raise ConflictError(
            "Transcript and acta are locked while the meeting is processing",
            detail={"status": status.value, "fields": sorted(edited & CONTENT_FIELDS)},
        )

    cleared = sorted(f for f in edited & REQUIRED_FIELDS if changes[f] is None)
    if cleared:
        raise ValidationError("These fields cannot be cleared", detail={"fields": cleared})

    transcript = changes["transcript"] if "transcript" in changes else meeting.transcript
    acta_content = changes["acta_content"] if "acta_content" in changes else meeting.acta_content
    if acta_content is not None and not transcript:
        raise ValidationError(
            "Acta content requires a transcript",
            detail={"fields": ["acta_content"]},
        )
