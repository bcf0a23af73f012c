import os
from pathlib import Path

from dotenv import load_dotenv

# Values already set in the environment win over the .env file
load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./acta.db")

UPLOAD_DIR = Path(os.getenv("UPLOAD_DIR", "uploads"))
OUTPUT_DIR = Path(os.getenv("OUTPUT_DIR", "output"))
LOG_DIR = os.getenv("LOG_DIR") or None
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

# Audio uploads
MAX_AUDIO_BYTES = int(os.getenv("MAX_AUDIO_BYTES", str(100 * 1024 * 1024)))
TRANSCRIPTION_LANGUAGE = os.getenv("TRANSCRIPTION_LANGUAGE", "es")

# Whisper
WHISPER_MODEL_SIZE = os.getenv("WHISPER_MODEL_SIZE", "large")
WHISPER_DEVICE = os.getenv("WHISPER_DEVICE", "cpu")

# Speaker diarization (optional)
DIARIZATION_ENABLED = _env_bool("DIARIZATION_ENABLED")
NUM_SPEAKERS = int(os.getenv("NUM_SPEAKERS", "-1"))
SEGMENTATION_MODEL_PATH = os.getenv(
    "SEGMENTATION_MODEL_PATH", "models/sherpa-onnx-pyannote-segmentation-3-0/model.onnx"
)
EMBEDDING_MODEL_PATH = os.getenv(
    "EMBEDDING_MODEL_PATH", "models/3dspeaker_speech_eres2net_base_sv_zh-cn_3dspeaker_16k.onnx"
)

# Drafting LLM (OpenAI compatible chat completions endpoint)
LM_API_URL = os.getenv("LM_API_URL", "http://localhost:1234/v1/chat/completions")
LM_API_KEY = os.getenv("LM_API_KEY") or None
CHAT_MODEL = os.getenv("CHAT_MODEL", "gpt-4o")
LM_TIMEOUT = float(os.getenv("LM_TIMEOUT", "300"))

# Email (Resend)
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
RESEND_API_KEY = os.getenv("RESEND_API_KEY") or None
EMAIL_FROM = os.getenv("EMAIL_FROM", "Acta <onboarding@resend.dev>")
EMAIL_TIMEOUT = float(os.getenv("EMAIL_TIMEOUT", "30"))

# A meeting left in "processing" longer than this can be claimed again.
PROCESSING_STALE_AFTER_SECONDS = int(os.getenv("PROCESSING_STALE_AFTER_SECONDS", "3600"))
