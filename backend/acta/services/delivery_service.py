import logging
from typing import Any, List, Optional, Sequence, Tuple

from pydantic import ValidationError as SchemaError

from ..errors import ConflictError, ValidationError
from ..models.meeting import Meeting, MeetingStatus
from ..schemas.recipient import Recipient
from ..utils.dates import format_long_date_es
from .email_client import EmailClient
from .lifecycle import Trigger
from .meeting_store import MeetingStore
from .pdf_renderer import PdfRenderer, document_filename

logger = logging.getLogger("acta.delivery")

DEFAULT_MESSAGE = "Adjunto encontrará el acta de la reunión."


def default_subject(building_name: str) -> str:
    return f"Acta - {building_name}"


def validate_recipients(entries: Optional[Sequence[Any]]) -> List[Recipient]:
    """Validate every entry, reporting all malformed ones at once."""
    if not entries:
        raise ValidationError(
            "At least one recipient is required",
            detail={"invalid_recipients": [], "reason": "empty"},
        )

    recipients: List[Recipient] = []
    invalid = []
    for index, entry in enumerate(entries):
        try:
            recipients.append(Recipient.model_validate(entry))
        except SchemaError as exc:
            invalid.append({
                "index": index,
                "id": entry.get("id") if isinstance(entry, dict) else None,
                "errors": [
                    {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
                    for err in exc.errors()
                ],
            })

    seen = set()
    for index, recipient in enumerate(recipients):
        if recipient.id in seen:
            invalid.append({
                "index": index,
                "id": recipient.id,
                "errors": [{"field": "id", "message": "Duplicate recipient id"}],
            })
        seen.add(recipient.id)

    if invalid:
        raise ValidationError("Invalid recipients", detail={"invalid_recipients": invalid})
    return recipients


class DeliveryService:
    """Renders the acta and emails it; a successful send marks the meeting as sent."""

    def __init__(self, store: MeetingStore, renderer: PdfRenderer, email_client: EmailClient):
        self.store = store
        self.renderer = renderer
        self.email_client = email_client

    def render_pdf(self, meeting_id: str, owner_id: str) -> Tuple[str, bytes]:
        """Read-only projection of the meeting as a PDF: (filename, bytes)."""
        meeting = self.store.get(meeting_id, owner_id)
        return document_filename(meeting), self.renderer.render_meeting(meeting)

    def send(
        self,
        meeting_id: str,
        owner_id: str,
        recipients: Optional[Sequence[Any]],
        subject: Optional[str] = None,
        message: Optional[str] = None,
    ) -> Meeting:
        validated = validate_recipients(recipients)
        meeting = self.store.get(meeting_id, owner_id)
        status = MeetingStatus(meeting.status)
        if status != MeetingStatus.review:
            raise ConflictError(
                f"Only meetings in review can be sent (current status '{status.value}')",
                detail={"status": status.value},
            )

        filename = document_filename(meeting)
        pdf = self.renderer.render_meeting(meeting)
        subject = (subject or "").strip() or default_subject(meeting.building_name)
        message = (message or "").strip() or DEFAULT_MESSAGE

        # Failures propagate: nothing has been written yet
        self.email_client.send_acta(
            recipients=validated,
            subject=subject,
            message=message,
            attachment=pdf,
            filename=filename,
            building_name=meeting.building_name,
            meeting_date=format_long_date_es(meeting.date),
        )
        logger.info("Acta for meeting %s emailed to %d recipients", meeting_id, len(validated))

        return self.store.transition(
            meeting_id,
            owner_id,
            Trigger.DELIVER,
            {"recipients": [r.model_dump() for r in validated]},
        )
