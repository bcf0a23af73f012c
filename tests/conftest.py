"""
Shared pytest fixtures.

Every test gets its own in-memory SQLite database and fake collaborators
(transcription, drafting, email) so no model, LM or mail provider is needed.
"""

import os
import tempfile
from datetime import datetime, timezone

# Configure the app before any acta module reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("UPLOAD_DIR", os.path.join(tempfile.gettempdir(), "acta-test-uploads"))
os.environ.pop("LOG_DIR", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from acta.database import get_db, init_db
from acta.models import MeetingStatus
from acta.schemas import MeetingCreate
from acta.services.acta_generator import ActaGenerator
from acta.services.audio_processor import AudioProcessor
from acta.services.meeting_store import MeetingStore
from acta.services.pdf_renderer import PdfRenderer
from acta.services.transcriber import TimedSegment, TranscriptionResult


OWNER_ID = "user_owner"
OTHER_OWNER_ID = "user_other"

MEETING_DATE = datetime(2025, 11, 28, 18, 30, tzinfo=timezone.utc)

TRANSCRIPT = [
    {"id": "0", "timestamp": "00:00", "speaker": None, "text": "Buenas tardes, comenzamos la junta."},
    {"id": "1", "timestamp": "00:15", "speaker": None, "text": "Se aprueba el presupuesto de la fachada."},
]

ACTA_CONTENT = """# Acta de la junta ordinaria

En Edificio Sol, siendo las 18:30 horas, se reúnen los propietarios.

## Orden del día
1. Aprobación del presupuesto
2. Ruegos y preguntas

## Acuerdos
- Se aprueba el presupuesto de la fachada por **unanimidad**.
"""

# 1x1 PNG
SIGNATURE_PNG = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


# ================================================================
# Fake collaborators
# ================================================================

class FakeTranscriber:
    """Returns a canned result (or raises) and remembers what it was asked."""

    def __init__(self, result=None, error=None):
        self.result = result or TranscriptionResult(
            text="Buenas tardes, comenzamos la junta. Se aprueba el presupuesto de la fachada.",
            duration=30.4,
            segments=[
                TimedSegment(start=0.0, end=15.2, text="Buenas tardes, comenzamos la junta."),
                TimedSegment(start=15.2, end=30.4, text="Se aprueba el presupuesto de la fachada."),
            ],
            language="es",
        )
        self.error = error
        self.calls = []

    def transcribe(self, audio_path, language):
        self.calls.append((audio_path, language))
        if self.error is not None:
            raise self.error
        return self.result


class FakeDrafter:
    def __init__(self, content=ACTA_CONTENT, error=None):
        self.content = content
        self.error = error
        self.requests = []

    def draft(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.content


class FakeEmailClient:
    def __init__(self, error=None):
        self.error = error
        self.sent = []

    def send_acta(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.sent.append(kwargs)
        return "email_123"


# ================================================================
# Database
# ================================================================

@pytest.fixture
def engine():
    """A private in-memory database shared by every session of one test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return MeetingStore(db)


@pytest.fixture
def make_meeting(store, db):
    """Create a meeting and force it into the given state."""

    def _make(owner_id=OWNER_ID, status=MeetingStatus.recording, **fields):
        meeting = store.create(
            owner_id,
            MeetingCreate(
                building_name=fields.pop("building_name", "Edificio Sol"),
                attendees_count=fields.pop("attendees_count", 12),
                date=fields.pop("date", MEETING_DATE),
            ),
        )
        meeting.status = status
        for field, value in fields.items():
            setattr(meeting, field, value)
        db.commit()
        db.refresh(meeting)
        return meeting

    return _make


@pytest.fixture
def review_meeting(make_meeting):
    return make_meeting(
        status=MeetingStatus.review,
        transcript=TRANSCRIPT,
        acta_content=ACTA_CONTENT,
        duration=30,
    )


# ================================================================
# Collaborators and services
# ================================================================

@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def drafter():
    return FakeDrafter()


@pytest.fixture
def email_client():
    return FakeEmailClient()


@pytest.fixture
def pdf_renderer():
    return PdfRenderer()


@pytest.fixture
def audio_processor(tmp_path):
    return AudioProcessor(tmp_path / "uploads", max_bytes=1024 * 1024)


@pytest.fixture
def acta_generator(store, drafter):
    return ActaGenerator(store, drafter)


# ================================================================
# HTTP
# ================================================================

@pytest.fixture
def client(session_factory, transcriber, drafter, email_client, pdf_renderer, audio_processor):
    from acta.main import create_app

    app = create_app(
        transcriber=transcriber,
        drafter=drafter,
        email_client=email_client,
        pdf_renderer=pdf_renderer,
        audio_processor=audio_processor,
        setup_database=False,
    )

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    return {"X-User-Id": OWNER_ID}
