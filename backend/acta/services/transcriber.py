import logging
import tempfile
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

from faster_whisper import WhisperModel

from ..errors import TranscriptionError
from ..utils import audio_utils

logger = logging.getLogger("acta.transcriber")


# Represents a segment of transcribed audio
@dataclass(frozen=True)
class TimedSegment:
    start: float
    end: float
    text: str
    speaker: Optional[str] = None


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    duration: float
    segments: List[TimedSegment] = field(default_factory=list)
    language: Optional[str] = None


class Transcriber(Protocol):
    def transcribe(self, audio_path: str, language: str) -> TranscriptionResult:
        ...


# Wrapper class for Whisper transcription
class WhisperTranscriber:
    """faster-whisper backed transcriber.

    The model is loaded on first use and kept for the lifetime of the instance.
    Any failure (ffmpeg conversion, model loading, decoding) is raised as
    TranscriptionError with the underlying message preserved.
    """

    def __init__(self, model_size: str = "large", device: str = "cpu", beam_size: int = 5):
        self.model_size = model_size
        self.device = device
        self.beam_size = beam_size
        self._model: Optional[WhisperModel] = None

    @property
    def model(self) -> WhisperModel:
        if self._model is None:
            logger.info("Loading Whisper model %s on %s", self.model_size, self.device)
            self._model = WhisperModel(self.model_size, device=self.device)
        return self._model

    def transcribe(self, audio_path: str, language: str) -> TranscriptionResult:
        try:
            with tempfile.TemporaryDirectory(prefix="acta-wav-") as work_dir:
                wav_path = audio_utils.convert_to_wav_16k_mono(audio_path, work_dir)
                segments_iter, info = self.model.transcribe(
                    wav_path,
                    beam_size=self.beam_size,
                    word_timestamps=False,
                    language=language,
                )
                # Segments are produced lazily; decode while the wav still exists
                segments = [
                    TimedSegment(start=s.start, end=s.end, text=s.text.strip())
                    for s in segments_iter
                ]
        except TranscriptionError:
            raise
        except Exception as exc:
            logger.error("Whisper transcription failed for %s: %s", audio_path, exc)
            raise TranscriptionError("Transcription failed", detail=str(exc)) from exc

        text = " ".join(s.text for s in segments if s.text).strip()
        return TranscriptionResult(
            text=text,
            duration=float(info.duration or 0.0),
            segments=segments,
            language=info.language,
        )
