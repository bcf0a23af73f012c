import logging
import uuid
from pathlib import Path
from typing import Optional

from ..errors import ValidationError
from ..utils import audio_utils

logger = logging.getLogger("acta.audio")


class AudioProcessor:
    """Validates uploaded recordings and stores them under the upload directory."""

    def __init__(self, upload_dir: Path, max_bytes: int):
        self.upload_dir = Path(upload_dir)
        self.max_bytes = max_bytes

    def validate_upload(self, audio: bytes, filename: Optional[str] = None) -> str:
        """Return the file suffix to store the payload under, or raise ValidationError."""
        if not audio:
            raise ValidationError("The audio file is empty", detail={"size": 0})
        if len(audio) > self.max_bytes:
            raise ValidationError(
                "The audio file is too large",
                detail={"size": len(audio), "max_size": self.max_bytes},
            )
        suffix = audio_utils.audio_suffix(filename)
        if suffix not in audio_utils.SUPPORTED_AUDIO_FORMATS:
            raise ValidationError(
                f"Unsupported audio format: {suffix}",
                detail={"supported": sorted(audio_utils.SUPPORTED_AUDIO_FORMATS)},
            )
        return suffix

    def save_upload(self, meeting_id: str, audio: bytes, suffix: str) -> Path:
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        path = self.upload_dir / f"audio-{meeting_id}-{uuid.uuid4().hex[:12]}{suffix}"
        path.write_bytes(audio)
        logger.info("Stored %d bytes of audio at %s", len(audio), path)
        return path

    @staticmethod
    def audio_url(path: Path) -> str:
        return f"/uploads/{path.name}"

    def resolve(self, audio_url: Optional[str]) -> Optional[Path]:
        """Map an ``/uploads/<name>`` reference back to a file inside the upload directory."""
        if not audio_url:
            return None
        name = Path(audio_url).name
        if not name:
            return None
        return self.upload_dir / name

    def discard(self, path: Optional[Path]) -> None:
        if path is None:
            return
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not remove audio file %s: %s", path, exc)
