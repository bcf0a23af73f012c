import logging
from dataclasses import dataclass
from typing import Optional, Protocol

import requests

from ..errors import DraftingError

logger = logging.getLogger("acta.drafter")

# Instructions for the LM
SYSTEM_PROMPT = (
    "Eres un experto en redacción de actas oficiales de comunidades de vecinos en España."
)

ACTA_PROMPT = """Eres un secretario profesional de comunidades de vecinos en España.
Genera un acta oficial de reunión basada en la siguiente transcripción.

INFORMACIÓN DE LA REUNIÓN:
- Comunidad: {building_name}
- Fecha: {meeting_date}
- Asistentes: {attendees_count} personas

TRANSCRIPCIÓN:
{transcript}

Por favor, genera un acta formal en español con el siguiente formato:
1. Encabezado con lugar, fecha y hora
2. Lista de asistentes (si se mencionan)
3. Orden del día (puntos tratados)
4. Desarrollo de la sesión con los acuerdos alcanzados
5. Cierre con hora de finalización

El acta debe ser profesional, clara y respetar el formato oficial español para actas de comunidades de propietarios."""


@dataclass(frozen=True)
class DraftRequest:
    building_name: str
    meeting_date: str
    attendees_count: int
    transcript: str

    def to_prompt(self) -> str:
        return ACTA_PROMPT.format(
            building_name=self.building_name,
            meeting_date=self.meeting_date,
            attendees_count=self.attendees_count,
            transcript=self.transcript,
        )


class Drafter(Protocol):
    def draft(self, request: DraftRequest) -> str:
        ...


class ChatCompletionsDrafter:
    """Drafts actas through an OpenAI compatible ``/chat/completions`` endpoint."""

    def __init__(
        self,
        api_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 300,
        max_tokens: int = 4096,
        temperature: float = 0.2,
    ):
        self.api_url = api_url
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def draft(self, request: DraftRequest) -> str:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": request.to_prompt()},
            ],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            resp = requests.post(self.api_url, json=payload, headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except requests.exceptions.RequestException as e:
            logger.error("Error communicating with the LM: %s", e)
            raise DraftingError("Acta drafting failed", detail=str(e)) from e
        except ValueError as e:
            raise DraftingError("Acta drafting failed", detail=f"Invalid JSON from LM: {e}") from e

        if not isinstance(data, dict):
            raise DraftingError("Acta drafting failed", detail="Unexpected LM response shape")

        content = (
            (data.get("choices") or [{}])[0]
            .get("message", {})
            .get("content")
            or ""
        ).strip()
        if not content:
            raise DraftingError("Acta drafting failed", detail="The LM returned an empty document")

        logger.info("Acta drafted (%d chars) for %s", len(content), request.building_name)
        return content
