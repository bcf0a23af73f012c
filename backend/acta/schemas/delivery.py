from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from .meeting import MeetingRead


class SendActaRequest(BaseModel):
    # Entries are validated one by one by the delivery service so that
    # every malformed recipient can be reported back.
    recipients: List[Dict[str, Any]]
    subject: Optional[str] = None
    message: Optional[str] = None


class SendActaResponse(BaseModel):
    success: bool
    message: str
    meeting: MeetingRead
