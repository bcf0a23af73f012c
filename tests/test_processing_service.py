"""Audio upload -> transcript -> draft orchestration."""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from acta.errors import ConflictError, DraftingError, NotFoundError, TranscriptionError, ValidationError
from acta.models import MeetingStatus
from acta.models.meeting import utcnow
from acta.services import processing_service
from acta.services.processing_service import ProcessingService, normalize_segments, round_duration
from acta.services.transcriber import TimedSegment, TranscriptionResult

from conftest import ACTA_CONTENT, OTHER_OWNER_ID, OWNER_ID, TRANSCRIPT, FakeDrafter, FakeTranscriber


AUDIO = b"\x1a\x45\xdf\xa3 fake webm payload"


@pytest.fixture
def make_service(store, audio_processor):
    def _make(transcriber=None, drafter=None, diarizer=None):
        from acta.services.acta_generator import ActaGenerator

        return ProcessingService(
            store,
            audio_processor,
            transcriber or FakeTranscriber(),
            ActaGenerator(store, drafter or FakeDrafter()),
            language="es",
            diarizer=diarizer,
        )

    return _make


def _uploads(audio_processor):
    if not audio_processor.upload_dir.exists():
        return []
    return list(audio_processor.upload_dir.iterdir())


class TestNormalizeSegments:
    def test_ids_and_timestamps(self):
        result = TranscriptionResult(
            text="a b",
            duration=30.4,
            segments=[TimedSegment(0.0, 15.2, "Hola."), TimedSegment(15.2, 30.4, "Adiós.")],
            language="es",
        )
        segments = normalize_segments(result)
        assert [(s["id"], s["timestamp"], s["text"]) for s in segments] == [
            ("0", "00:00", "Hola."),
            ("1", "00:15", "Adiós."),
        ]

    def test_minutes_past_the_hour(self):
        result = TranscriptionResult(text="x", duration=4000, segments=[TimedSegment(3725.0, 3730.0, "x")], language="es")
        assert normalize_segments(result)[0]["timestamp"] == "62:05"

    def test_full_text_fallback(self):
        result = TranscriptionResult(text="Solo texto.", duration=3.0, segments=[], language="es")
        assert normalize_segments(result) == [{"id": "0", "timestamp": "00:00", "speaker": None, "text": "Solo texto."}]

    def test_blank_segments_are_dropped(self):
        result = TranscriptionResult(
            text="Hola.",
            duration=5.0,
            segments=[TimedSegment(0.0, 1.0, "  "), TimedSegment(1.0, 5.0, "Hola.")],
            language="es",
        )
        assert [s["id"] for s in normalize_segments(result)] == ["0"]

    def test_speaker_labels(self):
        result = TranscriptionResult(text="a b", duration=2.0, segments=[TimedSegment(0.0, 1.0, "a"), TimedSegment(1.0, 2.0, "b")], language="es")
        segments = normalize_segments(result, ["speaker_0", "speaker_1"])
        assert [s["speaker"] for s in segments] == ["speaker_0", "speaker_1"]

    def test_no_speech_is_a_failure(self):
        with pytest.raises(TranscriptionError):
            normalize_segments(TranscriptionResult(text="", duration=1.0, segments=[], language="es"))


class TestRoundDuration:
    @pytest.mark.parametrize("seconds,expected", [(30.4, 30), (30.5, 31), (0, 0), (None, 0), (-2.0, 0)])
    def test_round(self, seconds, expected):
        assert round_duration(seconds) == expected


class TestProcessMeetingAudio:
    def test_happy_path_reaches_review_with_draft(self, make_service, make_meeting, audio_processor):
        meeting = make_meeting()
        transcriber = FakeTranscriber()

        result = make_service(transcriber=transcriber).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert result.status == MeetingStatus.review
        assert [(s["id"], s["timestamp"]) for s in result.transcript] == [("0", "00:00"), ("1", "00:15")]
        assert result.duration == 30
        assert result.acta_content == ACTA_CONTENT
        assert result.audio_url.startswith("/uploads/audio-")
        assert transcriber.calls[0][1] == "es"
        assert len(_uploads(audio_processor)) == 1

    def test_empty_audio_rejected_before_any_write(self, make_service, make_meeting, store, audio_processor):
        meeting = make_meeting()
        transcriber = FakeTranscriber()

        with pytest.raises(ValidationError):
            make_service(transcriber=transcriber).process_meeting_audio(meeting.id, OWNER_ID, b"", "junta.webm")

        assert store.get(meeting.id, OWNER_ID).status == MeetingStatus.recording
        assert transcriber.calls == []
        assert _uploads(audio_processor) == []

    def test_unsupported_format_rejected(self, make_service, make_meeting):
        meeting = make_meeting()
        with pytest.raises(ValidationError):
            make_service().process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "notes.txt")

    def test_missing_extension_defaults_to_webm(self, make_service, make_meeting, audio_processor):
        meeting = make_meeting()
        make_service().process_meeting_audio(meeting.id, OWNER_ID, AUDIO, None)
        assert _uploads(audio_processor)[0].suffix == ".webm"

    def test_transcription_failure_rolls_back(self, make_service, make_meeting, store, audio_processor):
        meeting = make_meeting()
        failing = FakeTranscriber(error=TranscriptionError("Transcription failed", detail="unsupported codec"))
        drafter = FakeDrafter()

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(transcriber=failing, drafter=drafter).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert exc_info.value.retryable is True
        assert exc_info.value.detail == "unsupported codec"
        current = store.get(meeting.id, OWNER_ID)
        assert current.status == MeetingStatus.recording
        assert current.transcript is None
        assert current.audio_url is None
        assert drafter.requests == []
        assert _uploads(audio_processor) == []

    def test_unexpected_error_rolls_back_and_propagates(self, make_service, make_meeting, store):
        meeting = make_meeting()
        failing = FakeTranscriber(error=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            make_service(transcriber=failing).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert store.get(meeting.id, OWNER_ID).status == MeetingStatus.recording

    def test_failure_after_stale_reclaim_keeps_previous_transcript(self, make_service, make_meeting, store, audio_processor):
        meeting = make_meeting(
            status=MeetingStatus.processing,
            transcript=TRANSCRIPT,
            acta_content=ACTA_CONTENT,
            duration=30,
            audio_url="/uploads/audio-previous.webm",
            updated_at=utcnow() - timedelta(hours=2),
        )
        failing = FakeTranscriber(error=TranscriptionError("Transcription failed", detail="unsupported codec"))

        with pytest.raises(TranscriptionError):
            make_service(transcriber=failing).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert len(failing.calls) == 1
        current = store.get(meeting.id, OWNER_ID)
        assert current.status == MeetingStatus.recording
        assert current.transcript == TRANSCRIPT
        assert current.acta_content == ACTA_CONTENT
        assert current.duration == 30
        assert current.audio_url == "/uploads/audio-previous.webm"
        assert _uploads(audio_processor) == []

    def test_failed_rollback_keeps_transcription_error(self, make_service, make_meeting, store, audio_processor):
        meeting_id = make_meeting().id
        transcriber = MagicMock()

        def _delete_then_fail(audio_path, language):
            store.delete(meeting_id, OWNER_ID)
            raise TranscriptionError("Transcription failed", detail="decoder crashed")

        transcriber.transcribe.side_effect = _delete_then_fail

        with pytest.raises(TranscriptionError) as exc_info:
            make_service(transcriber=transcriber).process_meeting_audio(meeting_id, OWNER_ID, AUDIO, "junta.webm")

        assert exc_info.value.detail == "decoder crashed"
        assert store.find(meeting_id, OWNER_ID) is None
        assert _uploads(audio_processor) == []

    def test_no_speech_rolls_back(self, make_service, make_meeting, store):
        meeting = make_meeting()
        silent = FakeTranscriber(result=TranscriptionResult(text="", duration=4.0, segments=[], language="es"))

        with pytest.raises(TranscriptionError):
            make_service(transcriber=silent).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert store.get(meeting.id, OWNER_ID).status == MeetingStatus.recording

    def test_draft_failure_still_reaches_review(self, make_service, make_meeting):
        meeting = make_meeting()
        drafter = FakeDrafter(error=DraftingError("Acta drafting failed", detail="quota exceeded"))

        result = make_service(drafter=drafter).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert result.status == MeetingStatus.review
        assert len(result.transcript) == 2
        assert result.acta_content is None

    def test_unexpected_draft_error_still_reaches_review(self, make_service, make_meeting):
        meeting = make_meeting()
        drafter = FakeDrafter(error=KeyError("choices"))

        result = make_service(drafter=drafter).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert result.status == MeetingStatus.review
        assert result.acta_content is None

    def test_already_processing_conflicts(self, make_service, make_meeting, store):
        meeting = make_meeting(status=MeetingStatus.processing)
        transcriber = FakeTranscriber()

        with pytest.raises(ConflictError):
            make_service(transcriber=transcriber).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert transcriber.calls == []
        assert store.get(meeting.id, OWNER_ID).status == MeetingStatus.processing

    def test_review_meeting_cannot_be_retranscribed(self, make_service, make_meeting):
        meeting = make_meeting(status=MeetingStatus.review, transcript=TRANSCRIPT)
        with pytest.raises(ConflictError):
            make_service().process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

    def test_other_owner_not_found(self, make_service, make_meeting):
        meeting = make_meeting()
        with pytest.raises(NotFoundError):
            make_service().process_meeting_audio(meeting.id, OTHER_OWNER_ID, AUDIO, "junta.webm")

    def test_diarization_labels_segments(self, make_service, make_meeting):
        meeting = make_meeting()
        diarizer = MagicMock()
        diarizer.label.return_value = ["speaker_0", "speaker_1"]

        result = make_service(diarizer=diarizer).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert [s["speaker"] for s in result.transcript] == ["speaker_0", "speaker_1"]

    def test_diarization_failure_keeps_transcript(self, make_service, make_meeting):
        meeting = make_meeting()
        diarizer = MagicMock()
        diarizer.label.side_effect = RuntimeError("model missing")

        result = make_service(diarizer=diarizer).process_meeting_audio(meeting.id, OWNER_ID, AUDIO, "junta.webm")

        assert result.status == MeetingStatus.review
        assert [s["speaker"] for s in result.transcript] == [None, None]


class TestImports:
    def test_diarizer_is_not_imported_at_runtime(self):
        # sherpa-onnx is only loaded when diarization is enabled
        assert "DiarizationService" not in vars(processing_service)
