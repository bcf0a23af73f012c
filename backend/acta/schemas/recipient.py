from pydantic import BaseModel, EmailStr, Field


class Recipient(BaseModel):
    id: str = Field(min_length=1)
    name: str
    email: EmailStr
