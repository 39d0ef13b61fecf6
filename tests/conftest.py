import copy
import json

import pytest

from recall.core.config import settings
from recall.db import database
from recall.services.anthropic_client import AnalysisClient

TEST_SECRET = "test-master-secret"

ANALYSIS_DOCUMENT = {
    "participants": [
        {"name": "Alice Martin", "role": "Engineering Manager"},
        {"name": "Bob Chen", "role": "Backend Developer"},
    ],
    "keyPoints": [
        "Payment service migration is on track",
        "Staging database is running out of disk space",
    ],
    "decisions": ["Freeze schema changes until the migration is done"],
    "actionItems": [
        {
            "description": "Resize the staging database volume",
            "assignee": "Bob Chen",
            "dueDate": "2024-03-20",
            "priority": "HIGH",
        },
        {
            "description": "Write the migration runbook",
            "assignee": "Alice Martin",
            "dueDate": "not-a-date",
            "priority": "MEDIUM",
        },
    ],
    "sentiment": "POSITIVE",
    "tone": "Focused",
    "summaryText": "The team reviewed the payment migration and agreed to freeze schema changes.",
}

def make_payload(document=None, text=None):
    """A Messages API response wrapping an analysis document"""
    if text is None:
        text = json.dumps(ANALYSIS_DOCUMENT if document is None else document)
    return {
        "id": "msg_01XFDUDYJgAACzvnptvVoYEL",
        "type": "message",
        "role": "assistant",
        "model": "claude-sonnet-4-20250514",
        "content": [{"type": "text", "text": text}],
        "stop_reason": "end_turn",
        "usage": {"input_tokens": 1523, "output_tokens": 412},
    }


class FakeAnalysisClient(AnalysisClient):
    """Returns a canned payload, or raises the configured error"""

    def __init__(self, payload=None, error=None):
        self.payload = payload if payload is not None else make_payload()
        self.error = error
        self.calls = []

    def analyze(self, transcript, api_key):
        self.calls.append((transcript, api_key))
        if self.error is not None:
            raise self.error
        return copy.deepcopy(self.payload)


@pytest.fixture(autouse=True)
def test_db(tmp_path, monkeypatch):
    """Fresh sqlite database and a fixed encryption secret for every test"""
    db_path = tmp_path / "recall-test.db"
    monkeypatch.setattr(settings, "DATABASE_PATH", db_path)
    monkeypatch.setattr(settings, "ENCRYPTION_SECRET", TEST_SECRET)
    database.reset_db_pool(db_path)
    database.init_db()
    yield db_path
    database.db_pool.close_thread_connection()

@pytest.fixture
def analysis_payload():
    return make_payload()

@pytest.fixture
def fake_client():
    return FakeAnalysisClient()

@pytest.fixture
def transcript():
    return (
        "Alice: Good morning everyone, quick update on the payment migration.\n"
        "Bob: Staging is almost out of disk, I'll resize the volume by Wednesday.\n"
        "Alice: Let's freeze schema changes until we're done.\n"
    )
