import base64
import html
import logging
from datetime import datetime
from typing import Optional, Protocol, Sequence

import requests

from ..errors import DeliveryError
from ..schemas.recipient import Recipient

logger = logging.getLogger("acta.email")

EMAIL_TEMPLATE = """<!DOCTYPE html>
<html>
  <head><meta charset="utf-8"></head>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px;">
    <div style="background: #166534; color: white; padding: 30px; border-radius: 8px 8px 0 0; text-align: center;">
      <h1 style="margin: 0; font-size: 24px;">Acta Oficial</h1>
    </div>
    <div style="border: 1px solid #e5e7eb; border-top: none; padding: 30px; border-radius: 0 0 8px 8px;">
      <p>Estimado/a,</p>
      <div style="background: #f9fafb; border-left: 4px solid #166534; padding: 15px; margin: 20px 0;">
        <p><strong>Edificio:</strong> {building_name}</p>
        <p><strong>Fecha:</strong> {meeting_date}</p>
      </div>
      <div style="margin: 20px 0; padding: 20px; background: #f3f4f6; border-radius: 6px;">
        <p>{message}</p>
      </div>
      <p>Adjunto a este correo encontrará el acta oficial en formato PDF.</p>
      <p>Por favor, revise el documento y confirme su recepción.</p>
      <div style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e5e7eb; text-align: center; font-size: 14px; color: #6b7280;">
        <p>Este es un correo automático generado por Acta.</p>
        <p>&copy; {year} Acta - Sistema de Gestión de Actas</p>
      </div>
    </div>
  </body>
</html>
"""


class EmailClient(Protocol):
    def send_acta(
        self,
        recipients: Sequence[Recipient],
        subject: str,
        message: str,
        attachment: bytes,
        filename: str,
        building_name: str,
        meeting_date: str,
    ) -> Optional[str]:
        ...


def render_email_html(message: str, building_name: str, meeting_date: str) -> str:
    return EMAIL_TEMPLATE.format(
        building_name=html.escape(building_name),
        meeting_date=html.escape(meeting_date),
        message=html.escape(message).replace("\n", "<br>"),
        year=datetime.now().year,
    )


class ResendEmailClient:
    """Sends the acta PDF through the Resend HTTP API."""

    def __init__(self, api_key: Optional[str], sender: str, api_url: str, timeout: float = 30):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.timeout = timeout

    def send_acta(
        self,
        recipients: Sequence[Recipient],
        subject: str,
        message: str,
        attachment: bytes,
        filename: str,
        building_name: str,
        meeting_date: str,
    ) -> Optional[str]:
        if not self.api_key:
            raise DeliveryError("Email delivery failed", detail="Resend API key not configured")

        payload = {
            "from": self.sender,
            "to": [r.email for r in recipients],
            "subject": subject,
            "html": render_email_html(message, building_name, meeting_date),
            "attachments": [
                {"filename": filename, "content": base64.b64encode(attachment).decode("ascii")}
            ],
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

        try:
            resp = requests.post(self.api_url, json=payload, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
        except requests.exceptions.HTTPError as e:
            body = e.response.text if e.response is not None else ""
            logger.error("Resend rejected the email: %s %s", e, body)
            raise DeliveryError("Email delivery failed", detail=body or str(e)) from e
        except requests.exceptions.RequestException as e:
            logger.error("Error sending email: %s", e)
            raise DeliveryError("Email delivery failed", detail=str(e)) from e

        try:
            data = resp.json()
        except ValueError:
            data = None
        message_id = data.get("id") if isinstance(data, dict) else None
        logger.info("Email sent via Resend to %d recipients: %s", len(recipients), message_id)
        return message_id
