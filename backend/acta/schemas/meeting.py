from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Optional, List

from ..models.meeting import MeetingStatus, SignatureStatus
from .recipient import Recipient
from .transcript import TranscriptSegment


class MeetingCreate(BaseModel):
    building_name: str = Field(min_length=1, max_length=255)
    attendees_count: int = Field(default=0, ge=0)
    date: Optional[datetime] = None
    duration: int = Field(default=0, ge=0)

    @field_validator("building_name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("building_name must not be blank")
        return value


class MeetingUpdate(BaseModel):
    """Partial update: only fields present in the payload are applied.

    Fields explicitly sent as null are cleared.
    """

    building_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    attendees_count: Optional[int] = Field(default=None, ge=0)
    date: Optional[datetime] = None
    duration: Optional[int] = Field(default=None, ge=0)
    status: Optional[MeetingStatus] = None
    transcript: Optional[List[TranscriptSegment]] = None
    acta_content: Optional[str] = None
    recipients: Optional[List[Recipient]] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class MeetingRead(BaseModel):
    id: str
    building_name: str
    attendees_count: int
    date: datetime
    duration: Optional[int]
    status: MeetingStatus
    audio_url: Optional[str]
    transcript: Optional[List[TranscriptSegment]]
    acta_content: Optional[str]
    recipients: Optional[List[Recipient]]
    signature_status: Optional[SignatureStatus]
    president_name: Optional[str]
    president_signature: Optional[str]
    president_signed_at: Optional[datetime]
    secretary_name: Optional[str]
    secretary_signature: Optional[str]
    secretary_signed_at: Optional[datetime]
    signed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MeetingStatusRead(BaseModel):
    status: MeetingStatus
    signature_status: Optional[SignatureStatus]

    model_config = {"from_attributes": True}
