"""Status state machine and edit rules."""

from types import SimpleNamespace

import pytest

from acta.errors import ConflictError, ValidationError
from acta.models import MeetingStatus
from acta.services import lifecycle
from acta.services.lifecycle import Trigger

from conftest import ACTA_CONTENT, TRANSCRIPT


def _meeting(status, transcript=None, acta_content=None):
    return SimpleNamespace(status=status, transcript=transcript, acta_content=acta_content)


class TestTransitions:
    @pytest.mark.parametrize(
        "current,trigger,expected",
        [
            (MeetingStatus.recording, Trigger.START_PROCESSING, MeetingStatus.processing),
            (MeetingStatus.processing, Trigger.FINISH_PROCESSING, MeetingStatus.review),
            (MeetingStatus.processing, Trigger.ROLLBACK, MeetingStatus.recording),
            (MeetingStatus.review, Trigger.DELIVER, MeetingStatus.sent),
        ],
    )
    def test_legal_triggers(self, current, trigger, expected):
        assert lifecycle.next_status(current, trigger) == expected

    @pytest.mark.parametrize(
        "current,trigger",
        [
            (MeetingStatus.processing, Trigger.START_PROCESSING),
            (MeetingStatus.review, Trigger.START_PROCESSING),
            (MeetingStatus.recording, Trigger.DELIVER),
            (MeetingStatus.sent, Trigger.DELIVER),
            (MeetingStatus.review, Trigger.ROLLBACK),
        ],
    )
    def test_illegal_triggers_conflict(self, current, trigger):
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.next_status(current, trigger)
        assert exc_info.value.detail["status"] == current.value

    def test_sent_is_terminal(self):
        for trigger in Trigger:
            with pytest.raises(ConflictError):
                lifecycle.next_status(MeetingStatus.sent, trigger)

    def test_no_path_skips_processing(self):
        assert not lifecycle.is_legal(MeetingStatus.recording, MeetingStatus.review)
        assert not lifecycle.is_legal(MeetingStatus.recording, MeetingStatus.sent)

    def test_regressions_are_illegal_except_rollback(self):
        assert lifecycle.is_legal(MeetingStatus.processing, MeetingStatus.recording)
        assert not lifecycle.is_legal(MeetingStatus.review, MeetingStatus.recording)
        assert not lifecycle.is_legal(MeetingStatus.sent, MeetingStatus.review)

    def test_same_status_is_a_noop(self):
        for status in MeetingStatus:
            assert lifecycle.is_legal(status, status)


class TestCheckEdit:
    def test_same_status_passes(self):
        lifecycle.check_edit(_meeting(MeetingStatus.review), {"status": MeetingStatus.review})

    def test_status_change_is_rejected(self):
        with pytest.raises(ConflictError):
            lifecycle.check_edit(_meeting(MeetingStatus.review), {"status": MeetingStatus.sent})

    def test_sent_meeting_is_read_only(self):
        meeting = _meeting(MeetingStatus.sent, TRANSCRIPT, ACTA_CONTENT)
        with pytest.raises(ConflictError):
            lifecycle.check_edit(meeting, {"building_name": "Otro"})

    def test_content_locked_while_processing(self):
        with pytest.raises(ConflictError):
            lifecycle.check_edit(_meeting(MeetingStatus.processing), {"transcript": TRANSCRIPT})

    def test_metadata_editable_while_processing(self):
        lifecycle.check_edit(_meeting(MeetingStatus.processing), {"attendees_count": 20})

    def test_required_field_cannot_be_cleared(self):
        with pytest.raises(ValidationError) as exc_info:
            lifecycle.check_edit(_meeting(MeetingStatus.recording), {"building_name": None})
        assert exc_info.value.detail["fields"] == ["building_name"]

    def test_acta_requires_transcript(self):
        with pytest.raises(ValidationError):
            lifecycle.check_edit(_meeting(MeetingStatus.review), {"acta_content": "Texto"})

    def test_clearing_transcript_under_existing_acta_is_rejected(self):
        meeting = _meeting(MeetingStatus.review, TRANSCRIPT, ACTA_CONTENT)
        with pytest.raises(ValidationError):
            lifecycle.check_edit(meeting, {"transcript": []})

    def test_content_locked_while_recording(self):
        with pytest.raises(ConflictError) as exc_info:
            lifecycle.check_edit(
                _meeting(MeetingStatus.recording),
                {"transcript": TRANSCRIPT, "acta_content": "Acta manual"},
            )
        assert exc_info.value.detail == {"status": "recording", "fields": ["acta_content", "transcript"]}

    def test_metadata_editable_while_recording(self):
        lifecycle.check_edit(_meeting(MeetingStatus.recording), {"building_name": "Edificio Luna"})

    def test_transcript_and_acta_together(self):
        lifecycle.check_edit(
            _meeting(MeetingStatus.review, TRANSCRIPT, ACTA_CONTENT),
            {"transcript": TRANSCRIPT, "acta_content": ACTA_CONTENT},
        )
