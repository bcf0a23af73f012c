import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, config
from .database import init_db
from .errors import ActaError, ValidationError
from .logging_setup import configure_logging
from .routers import auth, meetings
from .services.audio_processor import AudioProcessor

logger = logging.getLogger("acta.api")


def _default_transcriber():
    from .services.transcriber import WhisperTranscriber

    return WhisperTranscriber(model_size=config.WHISPER_MODEL_SIZE, device=config.WHISPER_DEVICE)


def _default_drafter():
    from .services.drafter import ChatCompletionsDrafter

    return ChatCompletionsDrafter(
        api_url=config.LM_API_URL,
        model=config.CHAT_MODEL,
        api_key=config.LM_API_KEY,
        timeout=config.LM_TIMEOUT,
    )


def _default_email_client():
    from .services.email_client import ResendEmailClient

    return ResendEmailClient(
        api_key=config.RESEND_API_KEY,
        sender=config.EMAIL_FROM,
        api_url=config.RESEND_API_URL,
        timeout=config.EMAIL_TIMEOUT,
    )


def _default_pdf_renderer():
    from .services.pdf_renderer import PdfRenderer

    return PdfRenderer()


def _default_diarizer():
    if not config.DIARIZATION_ENABLED:
        return None
    from .services.diarizer import DiarizationService

    return DiarizationService(
        segmentation_model=config.SEGMENTATION_MODEL_PATH,
        embedding_model=config.EMBEDDING_MODEL_PATH,
        num_speakers=config.NUM_SPEAKERS,
    )


async def handle_acta_error(request: Request, exc: ActaError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationError("Invalid request", detail=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(
    transcriber=None,
    drafter=None,
    email_client=None,
    pdf_renderer=None,
    diarizer=None,
    audio_processor=None,
    setup_database: bool = True,
) -> FastAPI:
    """Build the API. Collaborators left as None get their production implementation.

    Logging and table creation run on startup, so importing this module
    touches neither the log directory nor the database.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(config.LOG_DIR, config.LOG_LEVEL)
        if setup_database:
            init_db()
        logger.info("Acta API ready (upload dir %s)", app.state.audio_processor.upload_dir)
        yield
        logger.info("Acta API shutting down")

    app = FastAPI(
        title="Acta API",
        description="Meeting minutes: recording, transcription, drafting, signatures and delivery",
        version=__version__,
        lifespan=lifespan,
    )

    # Optional: CORS middleware for frontend apps
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.transcriber = transcriber or _default_transcriber()
    app.state.drafter = drafter or _default_drafter()
    app.state.email_client = email_client or _default_email_client()
    app.state.pdf_renderer = pdf_renderer or _default_pdf_renderer()
    app.state.diarizer = diarizer or _default_diarizer()
    app.state.audio_processor = audio_processor or AudioProcessor(config.UPLOAD_DIR, config.MAX_AUDIO_BYTES)

    app.add_exception_handler(ActaError, handle_acta_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
    app.include_router(meetings.router)
    app.include_router(auth.router)

    @app.get("/health")
    def health():
        return {"status": "ok"}

    return app


app = create_app()
