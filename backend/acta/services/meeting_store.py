import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import and_, case, literal, null, or_, update
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError
from ..models.meeting import Meeting, MeetingStatus, SignatureStatus, SignerRole, utcnow
from ..schemas.meeting import MeetingCreate
from . import lifecycle
from .lifecycle import Trigger

logger = logging.getLogger("acta.store")


class MeetingStore:
    """Persistence for meetings, always scoped by owner.

    A meeting owned by someone else is reported exactly like a missing one.
    """

    def __init__(self, db: Session):
        self.db = db

    def _query(self, owner_id: str):
        return self.db.query(Meeting).filter(Meeting.user_id == owner_id)

    def find(self, meeting_id: str, owner_id: str) -> Optional[Meeting]:
        if not meeting_id or not owner_id:
            return None
        return self._query(owner_id).filter(Meeting.id == meeting_id).first()

    def get(self, meeting_id: str, owner_id: str) -> Meeting:
        meeting = self.find(meeting_id, owner_id)
        if meeting is None:
            raise NotFoundError(detail={"meeting_id": meeting_id})
        return meeting

    def list(self, owner_id: str) -> List[Meeting]:
        return (
            self._query(owner_id)
            .order_by(Meeting.date.desc(), Meeting.created_at.desc())
            .all()
        )

    def create(self, owner_id: str, data: MeetingCreate) -> Meeting:
        now = utcnow()
        meeting = Meeting(
            user_id=owner_id,
            building_name=data.building_name,
            attendees_count=data.attendees_count,
            date=data.date or now,
            duration=data.duration,
            status=MeetingStatus.recording,
            created_at=now,
            updated_at=now,
        )
        self.db.add(meeting)
        self.db.commit()
        self.db.refresh(meeting)
        logger.info("Created meeting %s for owner %s", meeting.id, owner_id)
        return meeting

    def update(self, meeting_id: str, owner_id: str, changes: dict) -> Meeting:
        """Partial merge: keys absent from ``changes`` keep their value, keys set to None are cleared."""
        if "status" in changes:
            raise ValueError("status is changed through MeetingStore.transition")
        meeting = self.get(meeting_id, owner_id)
        for field, value in changes.items():
            if field == "transcript" and not value:
                value = None
            setattr(meeting, field, value)
        meeting.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(meeting)
        return meeting

    def delete(self, meeting_id: str, owner_id: str) -> bool:
        meeting = self.find(meeting_id, owner_id)
        if meeting is None:
            return False
        self.db.delete(meeting)
        self.db.commit()
        logger.info("Deleted meeting %s", meeting_id)
        return True

    def discard_pending(self) -> None:
        """Drop whatever a failed write left in the session."""
        self.db.rollback()

    def _compare_and_set(self, meeting_id: str, owner_id: str, condition, values: dict, action: str) -> Meeting:
        values = dict(values)
        values["updated_at"] = utcnow()
        stmt = (
            update(Meeting)
            .where(Meeting.id == meeting_id, Meeting.user_id == owner_id, condition)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount == 0:
            self.db.rollback()
            current = self.get(meeting_id, owner_id)
            raise ConflictError(
                f"Cannot {action} a meeting in '{MeetingStatus(current.status).value}' status",
                detail={"status": MeetingStatus(current.status).value, "action": action},
            )
        self.db.commit()
        self.db.expire_all()
        return self.get(meeting_id, owner_id)

    def transition(self, meeting_id: str, owner_id: str, trigger: Trigger, changes: Optional[dict] = None) -> Meeting:
        """Apply ``trigger`` only if the stored status is one of its sources.

        The check and the write are one UPDATE statement, so two transitions
        racing on the same meeting cannot both succeed.
        """
        values = dict(changes or {})
        values["status"] = lifecycle.target(trigger)
        condition = Meeting.status.in_(list(lifecycle.sources(trigger)))
        meeting = self._compare_and_set(
            meeting_id, owner_id, condition, values, trigger.value.replace("_", " ")
        )
        logger.info("Meeting %s: %s -> %s", meeting_id, trigger.value, values["status"].value)
        return meeting

    def claim_for_processing(self, meeting_id: str, owner_id: str, stale_after_seconds: int) -> Meeting:
        """Move a meeting into ``processing``, acting as an exclusive lock.

        A meeting already processing is only reclaimed when its last update
        is older than ``stale_after_seconds`` (an abandoned run).
        """
        stale_before: datetime = utcnow() - timedelta(seconds=stale_after_seconds)
        condition = or_(
            Meeting.status.in_(list(lifecycle.sources(Trigger.START_PROCESSING))),
            and_(Meeting.status == MeetingStatus.processing, Meeting.updated_at < stale_before),
        )
        meeting = self._compare_and_set(
            meeting_id,
            owner_id,
            condition,
            {"status": lifecycle.target(Trigger.START_PROCESSING)},
            "start transcribing",
        )
        logger.info("Meeting %s claimed for processing", meeting_id)
        return meeting

    def record_signature(self, meeting_id: str, owner_id: str, role: SignerRole, signer_name: str, image: str) -> Meeting:
        """Fill one signer slot and recompute the combined signature status.

        Both the slot write and the derived status are computed in one
        UPDATE from the row's current values, so president and secretary
        signing concurrently always converge on the same result.
        """
        now = utcnow()
        if SignerRole(role) == SignerRole.president:
            own, other = Meeting.president_signature, Meeting.secretary_signature
            values = {
                "president_name": signer_name,
                "president_signature": image,
                "president_signed_at": now,
            }
        else:
            own, other = Meeting.secretary_signature, Meeting.president_signature
            values = {
                "secretary_name": signer_name,
                "secretary_signature": image,
                "secretary_signed_at": now,
            }
        columns = Meeting.__table__.c
        values["signature_status"] = case(
            (other.is_not(None), literal(SignatureStatus.signed, columns.signature_status.type)),
            else_=literal(SignatureStatus.pending, columns.signature_status.type),
        )
        # signed_at is stamped only by the write that completes both slots
        values["signed_at"] = case(
            (other.is_(None), null()),
            (and_(own.is_not(None), Meeting.signed_at.is_not(None)), Meeting.signed_at),
            else_=literal(now, columns.signed_at.type),
        )
        return self._compare_and_set(
            meeting_id,
            owner_id,
            Meeting.status != MeetingStatus.sent,
            values,
            "sign",
        )
