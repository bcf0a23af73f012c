from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional


class UserSync(BaseModel):
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    image_url: Optional[str] = None


class UserRead(BaseModel):
    id: str
    email: str
    first_name: Optional[str]
    last_name: Optional[str]
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
