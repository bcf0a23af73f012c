from .transcript import TranscriptSegment
from .recipient import Recipient
from .meeting import MeetingCreate, MeetingUpdate, MeetingRead, MeetingStatusRead
from .signature import SignatureCreate
from .delivery import SendActaRequest, SendActaResponse
from .user import UserSync, UserRead

__all__ = [
    "TranscriptSegment",
    "Recipient",
    "MeetingCreate",
    "MeetingUpdate",
    "MeetingRead",
    "MeetingStatusRead",
    "SignatureCreate",
    "SendActaRequest",
    "SendActaResponse",
    "UserSync",
    "UserRead",
]
