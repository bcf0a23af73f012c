from pydantic import BaseModel, Field
from typing import Optional


class TranscriptSegment(BaseModel):
    id: str = Field(min_length=1)
    # mm:ss, minutes may run past 99 for long meetings
    timestamp: str = Field(pattern=r"^\d{2,}:[0-5]\d$")
    speaker: Optional[str] = None
    text: str
