import logging

import pytest

from recall.core.exceptions import ExternalServiceTimeout
from recall.models.meeting import ProcessingStatus
from recall.services.meeting_service import MeetingService
from recall.services.settings_service import SettingsService

from conftest import FakeAnalysisClient
from list_meetings import list_recent_meetings, parse_args


def test_parse_args_defaults():
    assert parse_args([]) == (20, None)

def test_parse_args_with_limit_and_status():
    assert parse_args(["5", "--status", "failed"]) == (5, ProcessingStatus.FAILED)

def test_unknown_status_prints_valid_values(capsys):
    with pytest.raises(SystemExit) as exc_info:
        parse_args(["--status", "DONE"])

    assert exc_info.value.code == 1
    out = capsys.readouterr().out
    assert "Unknown status: DONE" in out
    assert "PENDING, PROCESSING, COMPLETED, FAILED" in out

def test_missing_status_value_prints_usage(capsys):
    with pytest.raises(SystemExit):
        parse_args(["--status"])
    assert "Usage:" in capsys.readouterr().out

def test_status_filter_lists_only_matching_meetings(transcript, caplog):
    settings_service = SettingsService()
    settings_service.save_api_key("sk-ant-api03-list")
    MeetingService(analysis_client=FakeAnalysisClient(), settings_service=settings_service).upload_transcript(
        "2024-03-15_1400_Standup_Engineering.txt", transcript
    )
    failing = FakeAnalysisClient(error=ExternalServiceTimeout("Anthropic API request timed out after 120 seconds"))
    with pytest.raises(ExternalServiceTimeout):
        MeetingService(analysis_client=failing, settings_service=settings_service).upload_transcript(
            "2024-03-16_1400_Incident_Payments.txt", transcript
        )

    with caplog.at_level(logging.INFO, logger="recall-context.list-meetings"):
        list_recent_meetings(status=ProcessingStatus.FAILED)

    messages = [r.getMessage() for r in caplog.records if r.name == "recall-context.list-meetings"]
    assert "File: 2024-03-16_1400_Incident_Payments.txt" in messages
    assert "File: 2024-03-15_1400_Standup_Engineering.txt" not in messages
    assert any("timed out" in m for m in messages)
