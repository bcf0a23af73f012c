import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from pydantic import ValidationError as SchemaError

from ..errors import ActaError, CollaboratorError, TranscriptionError
from ..models.meeting import Meeting
from ..schemas.transcript import TranscriptSegment
from ..utils.dates import format_timestamp
from .acta_generator import ActaGenerator
from .audio_processor import AudioProcessor
from .lifecycle import Trigger
from .meeting_store import MeetingStore
from .transcriber import Transcriber, TranscriptionResult

if TYPE_CHECKING:
    from .diarizer import DiarizationService

logger = logging.getLogger("acta.processing")


def round_duration(seconds: Optional[float]) -> int:
    """Nearest whole second, halves rounded up."""
    if not seconds or seconds < 0:
        return 0
    return int(math.floor(seconds + 0.5))


def normalize_segments(result: TranscriptionResult, speakers: Optional[List[str]] = None) -> List[dict]:
    """Map collaborator output onto ordered transcript segments.

    Ids are zero-based and sequential, timestamps are the ``mm:ss`` of each
    segment's start. With no segments, the full text becomes one segment at
    ``00:00``. Raises TranscriptionError when nothing usable was returned.
    """
    segments = [s for s in result.segments if (s.text or "").strip()]
    try:
        if segments:
            normalized = [
                TranscriptSegment(
                    id=str(index),
                    timestamp=format_timestamp(seg.start),
                    speaker=(speakers[index] if speakers else None) or seg.speaker,
                    text=seg.text.strip(),
                )
                for index, seg in enumerate(segments)
            ]
        elif (result.text or "").strip():
            normalized = [TranscriptSegment(id="0", timestamp="00:00", text=result.text.strip())]
        else:
            raise TranscriptionError("Transcription failed", detail="No speech detected in the recording")
    except SchemaError as exc:
        raise TranscriptionError("Transcription failed", detail=f"Malformed transcription output: {exc}") from exc
    return [seg.model_dump() for seg in normalized]


class ProcessingService:
    """Audio upload -> transcript -> drafted acta, as one operation.

    The meeting moves recording -> processing when the upload is accepted.
    If transcription fails it is rolled back to recording and the stored
    audio is discarded; otherwise the transcript is committed and the acta
    generator moves the meeting on to review (with or without a draft).
    """

    def __init__(
        self,
        store: MeetingStore,
        audio_processor: AudioProcessor,
        transcriber: Transcriber,
        acta_generator: ActaGenerator,
        language: str = "es",
        diarizer: Optional["DiarizationService"] = None,
        stale_after_seconds: int = 3600,
    ):
        self.store = store
        self.audio_processor = audio_processor
        self.transcriber = transcriber
        self.acta_generator = acta_generator
        self.language = language
        self.diarizer = diarizer
        self.stale_after_seconds = stale_after_seconds

    def _speaker_labels(self, audio_path: Path, result: TranscriptionResult) -> Optional[List[str]]:
        if self.diarizer is None or not result.segments:
            return None
        speaking = [s for s in result.segments if (s.text or "").strip()]
        try:
            return self.diarizer.label(str(audio_path), speaking)
        except Exception as exc:
            logger.warning("Speaker diarization failed, keeping transcript without speakers: %s", exc)
            return None

    def _rollback(self, meeting_id: str, owner_id: str, audio_path: Optional[Path]) -> None:
        self.audio_processor.discard(audio_path)
        self.store.discard_pending()
        try:
            self.store.transition(meeting_id, owner_id, Trigger.ROLLBACK)
        except ActaError as exc:
            # Deleted or reclaimed mid-run; the caller re-raises the transcription error
            logger.error("Could not roll back meeting %s to recording: %s", meeting_id, exc.message)

    def process_meeting_audio(
        self,
        meeting_id: str,
        owner_id: str,
        audio: bytes,
        filename: Optional[str] = None,
    ) -> Meeting:
        suffix = self.audio_processor.validate_upload(audio, filename)
        self.store.claim_for_processing(meeting_id, owner_id, self.stale_after_seconds)

        audio_path: Optional[Path] = None
        try:
            audio_path = self.audio_processor.save_upload(meeting_id, audio, suffix)
            logger.info("Transcribing meeting %s (%d bytes, language=%s)", meeting_id, len(audio), self.language)
            result = self.transcriber.transcribe(str(audio_path), self.language)
            speakers = self._speaker_labels(audio_path, result)
            transcript = normalize_segments(result, speakers)
        except CollaboratorError as exc:
            logger.error("Transcription failed for meeting %s: %s", meeting_id, exc.detail or exc.message)
            self._rollback(meeting_id, owner_id, audio_path)
            raise TranscriptionError("Transcription failed", detail=exc.detail or exc.message) from exc
        except Exception:
            logger.exception("Unexpected error transcribing meeting %s", meeting_id)
            self._rollback(meeting_id, owner_id, audio_path)
            raise

        try:
            meeting = self.store.update(
                meeting_id,
                owner_id,
                {
                    "transcript": transcript,
                    "duration": round_duration(result.duration),
                    "audio_url": self.audio_processor.audio_url(audio_path),
                },
            )
        except Exception:
            logger.exception("Could not store transcript for meeting %s", meeting_id)
            self._rollback(meeting_id, owner_id, audio_path)
            raise
        logger.info("Transcription complete for meeting %s: %d segments", meeting_id, len(transcript))

        return self.acta_generator.finish_processing(meeting)
