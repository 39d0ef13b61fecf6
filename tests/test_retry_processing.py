from recall.core.exceptions import ExternalServiceTimeout
from recall.db.queries import get_meeting, list_meetings
from recall.services.meeting_service import MeetingService
from recall.services.settings_service import SettingsService

from conftest import FakeAnalysisClient
from retry_processing import retry_meeting

FILENAME = "2024-03-15_1400_Incident_Payments.txt"


def failed_meeting_id(transcript):
    settings_service = SettingsService()
    settings_service.save_api_key("sk-ant-api03-retry")
    client = FakeAnalysisClient(error=ExternalServiceTimeout("Anthropic API request timed out after 120 seconds"))
    try:
        MeetingService(analysis_client=client, settings_service=settings_service).upload_transcript(FILENAME, transcript)
    except ExternalServiceTimeout:
        pass
    return list_meetings(limit=1, offset=0)[0]["id"]

def test_retry_creates_new_completed_meeting(transcript):
    meeting_id = failed_meeting_id(transcript)

    new_id = retry_meeting(meeting_id, service=MeetingService(analysis_client=FakeAnalysisClient()))

    assert new_id != meeting_id
    assert get_meeting(new_id)["processing_status"] == "COMPLETED"
    assert get_meeting(new_id)["transcript_content"] == transcript
    assert get_meeting(meeting_id)["processing_status"] == "FAILED"

def test_retry_can_delete_failed_meeting(transcript):
    meeting_id = failed_meeting_id(transcript)

    retry_meeting(meeting_id, delete_failed=True, service=MeetingService(analysis_client=FakeAnalysisClient()))

    assert get_meeting(meeting_id) is None

def test_only_failed_meetings_are_retried(transcript):
    meeting_id = failed_meeting_id(transcript)
    service = MeetingService(analysis_client=FakeAnalysisClient())
    new_id = retry_meeting(meeting_id, service=service)

    assert retry_meeting(new_id, service=service) is None
    assert retry_meeting(999, service=service) is None
