"""Per-request wiring: the caller's identity and the services built around its DB session."""
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from . import config
from .database import get_db
from .services.acta_generator import ActaGenerator
from .services.audio_processor import AudioProcessor
from .services.delivery_service import DeliveryService
from .services.meeting_store import MeetingStore
from .services.processing_service import ProcessingService
from .services.signature_service import SignatureService


def get_owner_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    # Set by the authenticating proxy in front of the API
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return x_user_id.strip()


def get_store(db: Session = Depends(get_db)) -> MeetingStore:
    return MeetingStore(db)


def get_audio_processor(request: Request) -> AudioProcessor:
    return request.app.state.audio_processor


def get_acta_generator(request: Request, store: MeetingStore = Depends(get_store)) -> ActaGenerator:
    return ActaGenerator(store, request.app.state.drafter)


def get_processing_service(
    request: Request,
    store: MeetingStore = Depends(get_store),
    acta_generator: ActaGenerator = Depends(get_acta_generator),
) -> ProcessingService:
    state = request.app.state
    return ProcessingService(
        store,
        state.audio_processor,
        state.transcriber,
        acta_generator,
        language=config.TRANSCRIPTION_LANGUAGE,
        diarizer=state.diarizer,
        stale_after_seconds=config.PROCESSING_STALE_AFTER_SECONDS,
    )


def get_signature_service(store: MeetingStore = Depends(get_store)) -> SignatureService:
    return SignatureService(store)


def get_delivery_service(request: Request, store: MeetingStore = Depends(get_store)) -> DeliveryService:
    return DeliveryService(store, request.app.state.pdf_renderer, request.app.state.email_client)
