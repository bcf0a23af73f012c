from .meeting import Meeting, MeetingStatus, SignatureStatus, SignerRole
from .user import User

__all__ = ["Meeting", "MeetingStatus", "SignatureStatus", "SignerRole", "User"]
