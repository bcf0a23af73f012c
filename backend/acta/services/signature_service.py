import logging

from ..errors import ValidationError
from ..models.meeting import Meeting, SignerRole
from ..schemas.signature import SignatureCreate
from .meeting_store import MeetingStore

logger = logging.getLogger("acta.signatures")


class SignatureService:
    """Signer slots for the president and the secretary.

    Each call fills one slot. The combined status is ``signed`` exactly when
    both slots are filled, ``pending`` otherwise. Slots can be re-signed
    until the meeting is sent.
    """

    def __init__(self, store: MeetingStore):
        self.store = store

    def record_signature(self, meeting_id: str, owner_id: str, signature: SignatureCreate) -> Meeting:
        meeting = self.store.get(meeting_id, owner_id)
        if not (meeting.acta_content or "").strip():
            raise ValidationError(
                "The acta must have content before it can be signed",
                detail={"meeting_id": meeting_id},
            )

        meeting = self.store.record_signature(
            meeting_id,
            owner_id,
            SignerRole(signature.role),
            signature.signer_name,
            signature.signature_image,
        )
        logger.info(
            "Meeting %s signed by %s (%s), signature status %s",
            meeting_id,
            signature.role.value,
            signature.signer_name,
            meeting.signature_status.value if meeting.signature_status else None,
        )
        return meeting
