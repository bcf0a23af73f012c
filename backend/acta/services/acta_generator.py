import logging
from typing import Iterable, Optional

from ..errors import CollaboratorError, ValidationError
from ..models.meeting import Meeting
from ..utils.dates import format_long_date_es
from . import lifecycle
from .drafter import Drafter, DraftRequest
from .lifecycle import Trigger
from .meeting_store import MeetingStore

logger = logging.getLogger("acta.generator")


def flatten_transcript(segments: Iterable[dict]) -> str:
    """One line per segment: ``[mm:ss] speaker: text`` (speaker omitted when absent)."""
    lines = []
    for seg in segments:
        speaker = seg.get("speaker")
        prefix = f"{speaker}: " if speaker else ""
        lines.append(f"[{seg['timestamp']}] {prefix}{seg['text']}")
    return "\n".join(lines)


def build_draft_request(meeting: Meeting) -> DraftRequest:
    return DraftRequest(
        building_name=meeting.building_name,
        meeting_date=format_long_date_es(meeting.date),
        attendees_count=meeting.attendees_count or 0,
        transcript=flatten_transcript(meeting.transcript or []),
    )


class ActaGenerator:
    """Turns a meeting's transcript into draft acta content."""

    def __init__(self, store: MeetingStore, drafter: Drafter):
        self.store = store
        self.drafter = drafter

    def _draft(self, meeting: Meeting) -> str:
        if not meeting.transcript:
            raise ValidationError(
                "No transcript available for this meeting",
                detail={"meeting_id": meeting.id},
            )
        return self.drafter.draft(build_draft_request(meeting))

    def finish_processing(self, meeting: Meeting) -> Meeting:
        """Draft the acta for a freshly transcribed meeting and move it to review.

        A drafting failure still moves the meeting to review, without acta
        content: the transcript alone is worth keeping and the acta can be
        written or regenerated later.
        """
        acta_content: Optional[str] = None
        try:
            acta_content = self._draft(meeting)
        except CollaboratorError as exc:
            logger.warning(
                "Acta drafting failed for meeting %s, continuing without draft: %s",
                meeting.id,
                exc.detail or exc.message,
            )
        except Exception:
            logger.exception("Unexpected error drafting acta for meeting %s, continuing without draft", meeting.id)

        changes = {"acta_content": acta_content} if acta_content else {}
        return self.store.transition(meeting.id, meeting.user_id, Trigger.FINISH_PROCESSING, changes)

    def generate(self, meeting_id: str, owner_id: str) -> Meeting:
        """(Re)generate the acta for a meeting that already has a transcript.

        Drafting failures are raised to the caller; nothing is written.
        """
        meeting = self.store.get(meeting_id, owner_id)
        if not meeting.transcript:
            raise ValidationError(
                "No transcript available for this meeting",
                detail={"meeting_id": meeting_id},
            )
        # Refuses every status but review
        lifecycle.check_edit(meeting, {"acta_content": ""})

        acta_content = self._draft(meeting)
        logger.info("Regenerated acta for meeting %s", meeting_id)
        return self.store.update(meeting_id, owner_id, {"acta_content": acta_content})
