from fastapi import APIRouter, Depends, File, Response, UploadFile
from fastapi.responses import FileResponse
from typing import List

from .. import schemas
from ..deps import (
    get_acta_generator,
    get_audio_processor,
    get_delivery_service,
    get_owner_id,
    get_processing_service,
    get_signature_service,
    get_store,
)
from ..errors import NotFoundError
from ..services import lifecycle
from ..services.acta_generator import ActaGenerator
from ..services.audio_processor import AudioProcessor
from ..services.delivery_service import DeliveryService
from ..services.meeting_store import MeetingStore
from ..services.processing_service import ProcessingService
from ..services.signature_service import SignatureService


router = APIRouter(
    prefix="/api/meetings",
    tags=["meetings"]
)


@router.get("/", response_model=List[schemas.MeetingRead])
def list_meetings(owner_id: str = Depends(get_owner_id), store: MeetingStore = Depends(get_store)):
    return store.list(owner_id)


@router.post("/", response_model=schemas.MeetingRead, status_code=201)
def create_meeting(
    meeting: schemas.MeetingCreate,
    owner_id: str = Depends(get_owner_id),
    store: MeetingStore = Depends(get_store),
):
    return store.create(owner_id, meeting)


@router.get("/{meeting_id}", response_model=schemas.MeetingRead)
def get_meeting(meeting_id: str, owner_id: str = Depends(get_owner_id), store: MeetingStore = Depends(get_store)):
    return store.get(meeting_id, owner_id)


@router.patch("/{meeting_id}", response_model=schemas.MeetingRead)
def update_meeting(
    meeting_id: str,
    payload: schemas.MeetingUpdate,
    owner_id: str = Depends(get_owner_id),
    store: MeetingStore = Depends(get_store),
):
    meeting = store.get(meeting_id, owner_id)
    changes = payload.changes()
    lifecycle.check_edit(meeting, changes)
    # Only an unchanged status gets past check_edit
    changes.pop("status", None)
    if not changes:
        return meeting
    return store.update(meeting_id, owner_id, changes)


@router.delete("/{meeting_id}", status_code=204)
def delete_meeting(
    meeting_id: str,
    owner_id: str = Depends(get_owner_id),
    store: MeetingStore = Depends(get_store),
    audio_processor: AudioProcessor = Depends(get_audio_processor),
):
    meeting = store.get(meeting_id, owner_id)
    audio_path = audio_processor.resolve(meeting.audio_url)
    store.delete(meeting_id, owner_id)
    # delete audio file
    audio_processor.discard(audio_path)
    return Response(status_code=204)


@router.get("/{meeting_id}/status", response_model=schemas.MeetingStatusRead)
def meeting_status(meeting_id: str, owner_id: str = Depends(get_owner_id), store: MeetingStore = Depends(get_store)):
    return store.get(meeting_id, owner_id)


@router.post("/{meeting_id}/transcribe", response_model=schemas.MeetingRead)
def transcribe_meeting(
    meeting_id: str,
    audio: UploadFile = File(...),
    owner_id: str = Depends(get_owner_id),
    service: ProcessingService = Depends(get_processing_service),
):
    # Sync route: runs in the threadpool and finishes even if the client goes away
    payload = audio.file.read()
    return service.process_meeting_audio(meeting_id, owner_id, payload, audio.filename)


@router.post("/{meeting_id}/generate-acta", response_model=schemas.MeetingRead)
def generate_acta(
    meeting_id: str,
    owner_id: str = Depends(get_owner_id),
    generator: ActaGenerator = Depends(get_acta_generator),
):
    return generator.generate(meeting_id, owner_id)


@router.post("/{meeting_id}/signatures", response_model=schemas.MeetingRead)
def sign_meeting(
    meeting_id: str,
    signature: schemas.SignatureCreate,
    owner_id: str = Depends(get_owner_id),
    service: SignatureService = Depends(get_signature_service),
):
    return service.record_signature(meeting_id, owner_id, signature)


@router.post("/{meeting_id}/send", response_model=schemas.SendActaResponse)
def send_acta(
    meeting_id: str,
    payload: schemas.SendActaRequest,
    owner_id: str = Depends(get_owner_id),
    service: DeliveryService = Depends(get_delivery_service),
):
    meeting = service.send(meeting_id, owner_id, payload.recipients, payload.subject, payload.message)
    return schemas.SendActaResponse(
        success=True,
        message="Acta enviada correctamente",
        meeting=schemas.MeetingRead.model_validate(meeting),
    )


@router.get("/{meeting_id}/download-pdf")
def download_pdf(
    meeting_id: str,
    owner_id: str = Depends(get_owner_id),
    service: DeliveryService = Depends(get_delivery_service),
):
    filename, pdf = service.render_pdf(meeting_id, owner_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{meeting_id}/audio")
def meeting_audio(
    meeting_id: str,
    owner_id: str = Depends(get_owner_id),
    store: MeetingStore = Depends(get_store),
    audio_processor: AudioProcessor = Depends(get_audio_processor),
):
    meeting = store.get(meeting_id, owner_id)
    audio_path = audio_processor.resolve(meeting.audio_url)
    if audio_path is None or not audio_path.is_file():
        raise NotFoundError("Audio not found", detail={"meeting_id": meeting_id})
    return FileResponse(audio_path, filename=audio_path.name)
