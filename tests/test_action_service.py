import pytest
from datetime import date

from recall.core.exceptions import ActionItemNotFoundError
from recall.db.queries import get_action_items_by_meeting
from recall.services.action_service import ActionService
from recall.services.meeting_service import MeetingService
from recall.services.settings_service import SettingsService

from conftest import FakeAnalysisClient


@pytest.fixture
def meeting(transcript):
    settings_service = SettingsService()
    settings_service.save_api_key("sk-ant-api03-actions")
    service = MeetingService(analysis_client=FakeAnalysisClient(), settings_service=settings_service)
    return service.upload_transcript("2024-03-15_1400_Standup_Engineering.txt", transcript)

@pytest.fixture
def action_id(meeting):
    return get_action_items_by_meeting(meeting["id"])[0]["id"]


def test_list_actions_includes_meeting_context(meeting):
    page = ActionService().list_actions(page=0, size=10)

    assert page["total"] == 2
    assert page["total_pages"] == 1
    for action in page["items"]:
        assert action["meeting_id"] == meeting["id"]
        assert action["meeting_type"] == "Standup"
        assert action["meeting_date"].startswith("2024-03-15")

def test_get_action(action_id):
    action = ActionService().get_action(action_id)

    assert action["description"] == "Resize the staging database volume"
    assert action["assignee"] == "Bob Chen"
    assert action["status"] == "NOT_STARTED"

def test_get_missing_action_raises():
    with pytest.raises(ActionItemNotFoundError) as exc_info:
        ActionService().get_action(42)
    assert "42" in str(exc_info.value)

def test_partial_update_changes_only_given_fields(action_id):
    updated = ActionService().update_action(action_id, {"notes": "Ticket OPS-311", "due_date": date(2024, 3, 22)})

    assert updated["notes"] == "Ticket OPS-311"
    assert updated["due_date"] == "2024-03-22"
    assert updated["assignee"] == "Bob Chen"
    assert updated["priority"] == "HIGH"
    assert updated["completed_at"] is None

def test_completing_action_stamps_completed_at(action_id):
    service = ActionService()
    completed = service.update_action(action_id, {"status": "COMPLETED"})
    assert completed["status"] == "COMPLETED"
    assert completed["completed_at"] is not None

    again = service.update_action(action_id, {"status": "COMPLETED", "notes": "done"})
    assert again["completed_at"] == completed["completed_at"]

def test_update_missing_action_raises():
    with pytest.raises(ActionItemNotFoundError):
        ActionService().update_action(42, {"status": "IN_PROGRESS"})
