from sqlalchemy import Column, Integer, String, DateTime, Enum, Text, JSON
from ..database import Base
from datetime import datetime, timezone
import enum
import uuid


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MeetingStatus(str, enum.Enum):
    recording = "recording"
    processing = "processing"
    review = "review"
    sent = "sent"


class SignatureStatus(str, enum.Enum):
    pending = "pending"
    signed = "signed"


class SignerRole(str, enum.Enum):
    president = "president"
    secretary = "secretary"


class Meeting(Base):
    __tablename__ = "meetings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)

    building_name = Column(String(255), nullable=False)
    attendees_count = Column(Integer, nullable=False, default=0)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    duration = Column(Integer, nullable=False, default=0)
    audio_url = Column(String(512), nullable=True)
    status = Column(Enum(MeetingStatus), nullable=False, default=MeetingStatus.recording)

    # Ordered list of {id, timestamp, speaker?, text}
    transcript = Column(JSON, nullable=True)
    acta_content = Column(Text, nullable=True)
    # Ordered list of {id, name, email}
    recipients = Column(JSON, nullable=True)

    signature_status = Column(Enum(SignatureStatus), nullable=True)
    president_name = Column(String(255), nullable=True)
    president_signature = Column(Text, nullable=True)
    president_signed_at = Column(DateTime(timezone=True), nullable=True)
    secretary_name = Column(String(255), nullable=True)
    secretary_signature = Column(Text, nullable=True)
    secretary_signed_at = Column(DateTime(timezone=True), nullable=True)
    signed_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
