import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from recall.core.exceptions import ExternalServiceError, ExternalServiceTimeout
from recall.main import app
from recall.services.meeting_service import MeetingService, get_meeting_service
from recall.services.settings_service import SettingsService

from conftest import FakeAnalysisClient

client = TestClient(app)

FILENAME = "2024-03-15_1400_Standup_Engineering.txt"

@pytest.fixture
def analysis_client():
    """Fake analysis client wired into the meetings routes"""
    fake = FakeAnalysisClient()
    app.dependency_overrides[get_meeting_service] = lambda: MeetingService(
        analysis_client=fake, settings_service=SettingsService()
    )
    yield fake
    app.dependency_overrides.clear()

@pytest.fixture
def api_key():
    response = client.post("/api/v1/settings/api-key", json={"api_key": "sk-ant-api03-routes"})
    assert response.status_code == 200
    return "sk-ant-api03-routes"

def upload(transcript, filename=FILENAME):
    return client.post("/api/v1/meetings", json={"filename": filename, "content": transcript})


def test_root_and_health():
    assert client.get("/").json()["api_base_url"] == "/api/v1"

    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Process-Time" in response.headers

def test_upload_transcript(analysis_client, api_key, transcript):
    response = upload(transcript)

    assert response.status_code == 201
    data = response.json()
    assert data["processing_status"] == "COMPLETED"
    assert data["meeting_type"] == "Standup"
    assert data["summary"]["tone"] == "Focused"
    assert len(data["participants"]) == 2
    assert len(data["action_items"]) == 2
    assert data["transcript_content"] is None

def test_upload_transcript_file(analysis_client, api_key, transcript):
    response = client.post(
        "/api/v1/meetings/upload",
        files={"file": (FILENAME, transcript.encode("utf-8"), "text/plain")}
    )

    assert response.status_code == 201
    assert response.json()["original_filename"] == FILENAME
    assert analysis_client.calls[0][0] == transcript

def test_upload_rejects_non_txt_file(analysis_client, api_key):
    response = client.post(
        "/api/v1/meetings/upload",
        files={"file": ("2024-03-15_1400_Standup_Engineering.pdf", b"%PDF", "application/pdf")}
    )
    assert response.status_code == 400

def test_invalid_filename_returns_400(analysis_client, api_key, transcript):
    response = upload(transcript, filename="2024-03-15_1400_Sprint_Engineering.txt")

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INVALID_FILENAME"
    assert body["status"] == 400
    assert "Sprint" in body["message"]
    assert "timestamp" in body

def test_missing_api_key_returns_401(analysis_client, transcript):
    response = upload(transcript)

    assert response.status_code == 401
    assert response.json()["code"] == "API_KEY_NOT_CONFIGURED"

    meetings = client.get("/api/v1/meetings").json()
    assert meetings["items"][0]["processing_status"] == "FAILED"

@pytest.mark.parametrize("error, status_code", [
    (ExternalServiceError("Anthropic API error (401): invalid x-api-key", 401, "unauthorized"), 401),
    (ExternalServiceError("Anthropic API error (429): rate limited", 429, "rate_limited"), 429),
    (ExternalServiceError("Anthropic API error (400): bad request", 400, "bad_request"), 400),
    (ExternalServiceError("Anthropic API error (529): overloaded", 529), 502),
    (ExternalServiceTimeout("Anthropic API request timed out after 120 seconds"), 502),
])
def test_external_errors_map_to_status(analysis_client, api_key, transcript, error, status_code):
    analysis_client.error = error

    response = upload(transcript)

    assert response.status_code == status_code
    assert response.json()["code"] == "AI_SERVICE_ERROR"

def test_timeout_leaves_meeting_failed(analysis_client, api_key, transcript):
    analysis_client.error = ExternalServiceTimeout("Anthropic API request timed out after 120 seconds")
    upload(transcript)

    meeting_id = client.get("/api/v1/meetings").json()["items"][0]["id"]
    status = client.get(f"/api/v1/meetings/{meeting_id}/processing-status").json()
    assert status["status"] == "FAILED"
    assert "timed out" in status["error"]

def test_unexpected_error_is_generic(analysis_client, api_key, transcript):
    analysis_client.error = KeyError("internal detail")

    response = upload(transcript)

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "PROCESSING_FAILED"
    assert "internal detail" not in body["message"]

def test_unhandled_exception_returns_internal_error(api_key, transcript):
    failing_client = TestClient(app, raise_server_exceptions=False)
    with patch("recall.services.meeting_service.MeetingService.list_meetings", side_effect=RuntimeError("boom")):
        response = failing_client.get("/api/v1/meetings")

    assert response.status_code == 500
    assert response.json()["code"] == "INTERNAL_ERROR"
    assert "boom" not in response.json()["message"]

def test_validation_error_returns_400(analysis_client):
    response = client.post("/api/v1/meetings", json={"filename": FILENAME})

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert "content" in body["details"]["fields"]

def test_get_meeting_detail(analysis_client, api_key, transcript):
    meeting_id = upload(transcript).json()["id"]

    response = client.get(f"/api/v1/meetings/{meeting_id}")

    assert response.status_code == 200
    assert response.json()["transcript_content"] == transcript

def test_get_missing_meeting_returns_404(analysis_client):
    response = client.get("/api/v1/meetings/999")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"

def test_list_meetings_pagination(analysis_client, api_key, transcript):
    for day in ("10", "11", "12"):
        upload(transcript, filename=f"2024-03-{day}_0900_Retro_Platform.txt")

    page = client.get("/api/v1/meetings", params={"page": 0, "size": 2}).json()

    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert page["items"][0]["meeting_date"].startswith("2024-03-12")

def test_delete_meeting(analysis_client, api_key, transcript):
    meeting_id = upload(transcript).json()["id"]

    assert client.delete(f"/api/v1/meetings/{meeting_id}").status_code == 204
    assert client.get(f"/api/v1/meetings/{meeting_id}").status_code == 404

def test_actions_endpoints(analysis_client, api_key, transcript):
    upload(transcript)

    page = client.get("/api/v1/actions").json()
    assert page["total"] == 2
    action_id = page["items"][0]["id"]

    updated = client.put(f"/api/v1/actions/{action_id}", json={"assignee": "Carol", "priority": "LOW"}).json()
    assert updated["assignee"] == "Carol"
    assert updated["priority"] == "LOW"

    completed = client.patch(f"/api/v1/actions/{action_id}/status", json={"status": "COMPLETED"}).json()
    assert completed["status"] == "COMPLETED"
    assert completed["completed_at"] is not None
    assert completed["meeting_type"] == "Standup"

    assert client.get("/api/v1/actions/999").status_code == 404

def test_api_key_lifecycle():
    status = client.get("/api/v1/settings/api-key/status").json()
    assert status["configured"] is False

    saved = client.post("/api/v1/settings/api-key", json={"api_key": "sk-ant-api03-xyz"}).json()
    assert saved["configured"] is True
    assert "sk-ant-api03-xyz" not in str(saved)
    assert client.get("/api/v1/settings/api-key/status").json()["configured"] is True

    deleted = client.delete("/api/v1/settings/api-key").json()
    assert deleted["configured"] is False
    assert client.get("/api/v1/settings/api-key/status").json()["configured"] is False

def test_blank_api_key_is_rejected():
    response = client.post("/api/v1/settings/api-key", json={"api_key": "   "})
    assert response.status_code == 400
