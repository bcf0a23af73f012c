import base64
import binascii

from pydantic import BaseModel, Field, field_validator

from ..models.meeting import SignerRole


def strip_data_url(image: str) -> str:
    """Return the base64 payload of a data URL, or the input unchanged."""
    if image.startswith("data:") and "," in image:
        return image.split(",", 1)[1]
    return image


class SignatureCreate(BaseModel):
    role: SignerRole
    signer_name: str = Field(min_length=1, max_length=255)
    signature_image: str = Field(min_length=1)

    @field_validator("signer_name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("signer_name must not be blank")
        return value

    @field_validator("signature_image")
    @classmethod
    def _base64_image(cls, value: str) -> str:
        payload = strip_data_url(value.strip())
        try:
            decoded = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError("signature_image must be base64 image data") from exc
        if not decoded:
            raise ValueError("signature_image is empty")
        return value.strip()
