import json
import logging
from contextlib import contextmanager
from datetime import datetime

from .database import get_db_connection, release_db_connection

logger = logging.getLogger("recall-context.db")

# Columns that update_meeting / update_action_item are allowed to touch
MEETING_UPDATABLE = {"processing_status", "processing_error", "series_id", "series_name"}
ACTION_UPDATABLE = {"status", "assignee", "due_date", "priority", "notes", "completed_at"}

def _now():
    return datetime.now().isoformat()

@contextmanager
def _connection(conn=None):
    """
    Yield the caller's connection (inside a UnitOfWork, no commit here) or this
    thread's connection, committed when the block succeeds.
    """
    if conn is not None:
        yield conn
        return
    own = get_db_connection()
    try:
        yield own
        own.commit()
    except Exception:
        own.rollback()
        raise
    finally:
        release_db_connection(own)

def _build_set_clause(update_data, allowed):
    unknown = set(update_data) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")
    columns = list(update_data.keys())
    return ", ".join(f"{c} = ?" for c in columns), [update_data[c] for c in columns]

# ---------------------------------------------------------------------------
# Meeting series
# ---------------------------------------------------------------------------

def find_or_create_series(series_name, meeting_type, conn=None):
    """Return the series for (series_name, meeting_type), creating it if needed"""
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute(
            "SELECT * FROM meeting_series WHERE series_name = ? AND meeting_type = ?",
            (series_name, meeting_type)
        )
        row = cursor.fetchone()
        if row:
            return dict(row)

        now = _now()
        cursor.execute(
            """
            INSERT INTO meeting_series (series_name, meeting_type, created_at, updated_at)
            VALUES (?, ?, ?, ?)
            """,
            (series_name, meeting_type, now, now)
        )
        logger.info(f"Created meeting series '{series_name}' ({meeting_type})")
        cursor.execute("SELECT * FROM meeting_series WHERE id = ?", (cursor.lastrowid,))
        return dict(cursor.fetchone())

# ---------------------------------------------------------------------------
# Meetings
# ---------------------------------------------------------------------------

def create_meeting(meeting_data, conn=None):
    """Insert a meeting and return the stored row"""
    now = _now()
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute(
            """
            INSERT INTO meetings (
                series_id, meeting_date, meeting_type, series_name,
                original_filename, transcript_content, processing_status,
                processing_error, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                meeting_data.get("series_id"),
                meeting_data["meeting_date"].isoformat(),
                meeting_data["meeting_type"],
                meeting_data.get("series_name"),
                meeting_data["original_filename"],
                meeting_data["transcript_content"],
                meeting_data.get("processing_status", "PENDING"),
                meeting_data.get("processing_error"),
                now,
                now,
            )
        )
        cursor.execute("SELECT * FROM meetings WHERE id = ?", (cursor.lastrowid,))
        return dict(cursor.fetchone())

def get_meeting(meeting_id, conn=None):
    """Fetch one meeting, or None"""
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute("SELECT * FROM meetings WHERE id = ?", (meeting_id,))
        row = cursor.fetchone()
        return dict(row) if row else None

def list_meetings(limit, offset):
    """Meetings ordered by meeting date, newest first"""
    with _connection() as c:
        cursor = c.cursor()
        cursor.execute(
            "SELECT * FROM meetings ORDER BY meeting_date DESC, id DESC LIMIT ? OFFSET ?",
            (limit, offset)
        )
        return [dict(r) for r in cursor.fetchall()]

def count_meetings():
    with _connection() as c:
        return c.execute("SELECT COUNT(*) FROM meetings").fetchone()[0]

def get_meetings_by_status(status):
    with _connection() as c:
        cursor = c.cursor()
        cursor.execute(
            "SELECT * FROM meetings WHERE processing_status = ? ORDER BY created_at DESC",
            (status,)
        )
        return [dict(r) for r in cursor.fetchall()]

def update_meeting(meeting_id, update_data, conn=None):
    """
    Update a meeting's columns.

    Returns:
        bool: True if a row was updated
    """
    set_clause, values = _build_set_clause(update_data, MEETING_UPDATABLE)
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute(
            f"UPDATE meetings SET {set_clause}, updated_at = ? WHERE id = ?",
            (*values, _now(), meeting_id)
        )
        if cursor.rowcount == 0:
            logger.warning(f"No rows updated for meeting {meeting_id}")
            return False
        logger.debug(f"Meeting {meeting_id} updated with {sorted(update_data)}")
        return True

def delete_meeting(meeting_id):
    """Delete a meeting; summaries, participants, actions and logs cascade"""
    with _connection() as c:
        cursor = c.cursor()
        cursor.execute("DELETE FROM meetings WHERE id = ?", (meeting_id,))
        return cursor.rowcount > 0

# ---------------------------------------------------------------------------
# Summaries, participants, action items
# ---------------------------------------------------------------------------

def _summary_from_row(row):
    summary = dict(row)
    summary["key_points"] = json.loads(summary["key_points"] or "[]")
    summary["decisions"] = json.loads(summary["decisions"] or "[]")
    summary["ai_metadata"] = json.loads(summary["ai_metadata"] or "{}")
    return summary

def create_summary(meeting_id, summary_data, conn=None):
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute(
            """
            INSERT INTO summaries (
                meeting_id, key_points, decisions, summary_text,
                sentiment, tone, ai_metadata, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                meeting_id,
                json.dumps(summary_data.get("key_points", [])),
                json.dumps(summary_data.get("decisions", [])),
                summary_data["summary_text"],
                summary_data.get("sentiment"),
                summary_data.get("tone"),
                json.dumps(summary_data.get("ai_metadata", {})),
                _now(),
            )
        )
        return cursor.lastrowid

def get_summary_by_meeting(meeting_id, conn=None):
    with _connection(conn) as c:
        row = c.execute("SELECT * FROM summaries WHERE meeting_id = ?", (meeting_id,)).fetchone()
        return _summary_from_row(row) if row else None

def create_participants(meeting_id, participants, conn=None):
    with _connection(conn) as c:
        c.executemany(
            "INSERT INTO participants (meeting_id, name, role) VALUES (?, ?, ?)",
            [(meeting_id, p["name"], p.get("role")) for p in participants]
        )
        return len(participants)

def get_participants_by_meeting(meeting_id, conn=None):
    with _connection(conn) as c:
        rows = c.execute(
            "SELECT * FROM participants WHERE meeting_id = ? ORDER BY id", (meeting_id,)
        ).fetchall()
        return [dict(r) for r in rows]

def create_action_items(meeting_id, action_items, conn=None):
    now = _now()
    with _connection(conn) as c:
        c.executemany(
            """
            INSERT INTO action_items (
                meeting_id, description, assignee, due_date, status,
                priority, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    meeting_id,
                    a["description"],
                    a.get("assignee"),
                    a["due_date"].isoformat() if a.get("due_date") else None,
                    a.get("status", "NOT_STARTED"),
                    a.get("priority"),
                    now,
                    now,
                )
                for a in action_items
            ]
        )
        return len(action_items)

_ACTION_SELECT = """
    SELECT a.*, m.meeting_type AS meeting_type, m.meeting_date AS meeting_date
    FROM action_items a JOIN meetings m ON m.id = a.meeting_id
"""

def get_action_items_by_meeting(meeting_id, conn=None):
    with _connection(conn) as c:
        rows = c.execute(
            _ACTION_SELECT + " WHERE a.meeting_id = ? ORDER BY a.id", (meeting_id,)
        ).fetchall()
        return [dict(r) for r in rows]

def list_action_items(limit, offset):
    """Action items, most recently created first"""
    with _connection() as c:
        rows = c.execute(
            _ACTION_SELECT + " ORDER BY a.created_at DESC, a.id DESC LIMIT ? OFFSET ?",
            (limit, offset)
        ).fetchall()
        return [dict(r) for r in rows]

def count_action_items():
    with _connection() as c:
        return c.execute("SELECT COUNT(*) FROM action_items").fetchone()[0]

def get_action_item(action_id):
    with _connection() as c:
        row = c.execute(_ACTION_SELECT + " WHERE a.id = ?", (action_id,)).fetchone()
        return dict(row) if row else None

def update_action_item(action_id, update_data):
    """Update an action item; returns True if a row changed"""
    set_clause, values = _build_set_clause(update_data, ACTION_UPDATABLE)
    with _connection() as c:
        cursor = c.cursor()
        cursor.execute(
            f"UPDATE action_items SET {set_clause}, updated_at = ? WHERE id = ?",
            (*values, _now(), action_id)
        )
        return cursor.rowcount > 0

# ---------------------------------------------------------------------------
# Processing logs
# ---------------------------------------------------------------------------

def create_processing_log(meeting_id, operation, status, error_message=None, conn=None):
    with _connection(conn) as c:
        cursor = c.cursor()
        cursor.execute(
            """
            INSERT INTO processing_logs (meeting_id, operation, status, error_message, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (meeting_id, operation, status, error_message, _now())
        )
        return cursor.lastrowid

def get_processing_logs(meeting_id):
    with _connection() as c:
        rows = c.execute(
            "SELECT * FROM processing_logs WHERE meeting_id = ? ORDER BY created_at DESC, id DESC",
            (meeting_id,)
        ).fetchall()
        return [dict(r) for r in rows]

# ---------------------------------------------------------------------------
# User settings (encrypted credentials, keyed by user id)
# ---------------------------------------------------------------------------

def get_user_settings(user_id):
    with _connection() as c:
        row = c.execute("SELECT * FROM user_settings WHERE user_id = ?", (user_id,)).fetchone()
        return dict(row) if row else None

def save_user_settings(user_id, encrypted_api_key, encryption_iv):
    """Create or overwrite the credential row for user_id"""
    now = _now()
    with _connection() as c:
        c.execute(
            """
            INSERT INTO user_settings (user_id, encrypted_api_key, encryption_iv, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                encrypted_api_key = excluded.encrypted_api_key,
                encryption_iv = excluded.encryption_iv,
                updated_at = excluded.updated_at
            """,
            (user_id, encrypted_api_key, encryption_iv, now, now)
        )
