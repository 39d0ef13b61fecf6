import sqlite3
import threading
import logging
from pathlib import Path

from ..core.config import settings

logger = logging.getLogger("recall-context.db")

# Per-thread connection manager for SQLite
class ThreadLocalConnectionManager:
    def __init__(self, db_path):
        self.db_path = Path(db_path)
        self.local = threading.local()

    def connect(self, isolation_level=""):
        """Open a new connection configured for this application"""
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=settings.DB_TIMEOUT,
            check_same_thread=False,
            isolation_level=isolation_level,
        )
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def get_connection(self):
        # Reuse this thread's connection if it already has one
        if not hasattr(self.local, 'connection'):
            self.local.connection = self.connect()
        return self.local.connection

    def release_connection(self, conn):
        # Nothing to do: the connection stays attached to its thread
        pass

    def close_thread_connection(self):
        # Close the current thread's connection if it exists
        if hasattr(self.local, 'connection'):
            try:
                self.local.connection.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing connection: {e}")
            finally:
                del self.local.connection

# Global connection manager
db_pool = ThreadLocalConnectionManager(settings.DATABASE_PATH)

def get_db_connection():
    """Get this thread's connection"""
    return db_pool.get_connection()

def release_db_connection(conn):
    """Release a connection for reuse"""
    db_pool.release_connection(conn)

def reset_db_pool(db_path=None):
    """Recreate the connection manager, optionally pointing at another database file"""
    global db_pool
    db_pool.close_thread_connection()
    db_pool = ThreadLocalConnectionManager(db_path or settings.DATABASE_PATH)
    return True


class UnitOfWork:
    """
    Explicit transactional boundary.

    Opens a dedicated connection and starts an immediate (write-locked)
    transaction. Writes made through ``uow.conn`` become visible together on
    a clean exit and are rolled back if the block raises.

    Usage:
        with UnitOfWork() as uow:
            create_summary(meeting_id, analysis, conn=uow.conn)
            update_meeting(meeting_id, {...}, conn=uow.conn)
    """

    def __init__(self):
        self.conn = None

    def __enter__(self):
        # Autocommit mode so that BEGIN/COMMIT are fully under our control
        self.conn = db_pool.connect(isolation_level=None)
        self.conn.execute("BEGIN IMMEDIATE")
        return self

    def __exit__(self, exc_type, exc, tb):
        try:
            if exc_type is None:
                self.conn.execute("COMMIT")
            else:
                self.conn.execute("ROLLBACK")
                logger.info(f"Unit of work rolled back: {exc_type.__name__}")
        finally:
            self.conn.close()
            self.conn = None
        return False


SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS meeting_series (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        series_name TEXT NOT NULL,
        meeting_type TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL,
        UNIQUE (series_name, meeting_type)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS meetings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        series_id INTEGER,
        meeting_date TIMESTAMP NOT NULL,
        meeting_type TEXT NOT NULL,
        series_name TEXT,
        original_filename TEXT NOT NULL,
        transcript_content TEXT NOT NULL,
        processing_status TEXT NOT NULL DEFAULT 'PENDING',
        processing_error TEXT,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL,
        FOREIGN KEY (series_id) REFERENCES meeting_series (id) ON DELETE SET NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS summaries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        meeting_id INTEGER NOT NULL UNIQUE,
        key_points TEXT NOT NULL,
        decisions TEXT NOT NULL,
        summary_text TEXT NOT NULL,
        sentiment TEXT,
        tone TEXT,
        ai_metadata TEXT,
        created_at TIMESTAMP NOT NULL,
        FOREIGN KEY (meeting_id) REFERENCES meetings (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS participants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        meeting_id INTEGER NOT NULL,
        name TEXT NOT NULL,
        role TEXT,
        FOREIGN KEY (meeting_id) REFERENCES meetings (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS action_items (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        meeting_id INTEGER NOT NULL,
        description TEXT NOT NULL,
        assignee TEXT,
        due_date DATE,
        status TEXT NOT NULL DEFAULT 'NOT_STARTED',
        priority TEXT,
        notes TEXT,
        completed_at TIMESTAMP,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL,
        FOREIGN KEY (meeting_id) REFERENCES meetings (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS processing_logs (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        meeting_id INTEGER NOT NULL,
        operation TEXT NOT NULL,
        status TEXT NOT NULL,
        error_message TEXT,
        created_at TIMESTAMP NOT NULL,
        FOREIGN KEY (meeting_id) REFERENCES meetings (id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id TEXT UNIQUE NOT NULL,
        encrypted_api_key TEXT NOT NULL,
        encryption_iv TEXT NOT NULL,
        created_at TIMESTAMP NOT NULL,
        updated_at TIMESTAMP NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_meeting_date ON meetings(meeting_date)",
    "CREATE INDEX IF NOT EXISTS idx_meeting_status ON meetings(processing_status)",
    "CREATE INDEX IF NOT EXISTS idx_participant_meeting ON participants(meeting_id)",
    "CREATE INDEX IF NOT EXISTS idx_action_meeting ON action_items(meeting_id)",
    "CREATE INDEX IF NOT EXISTS idx_action_status ON action_items(status)",
    "CREATE INDEX IF NOT EXISTS idx_log_meeting ON processing_logs(meeting_id)",
]

def init_db():
    """Initialise the database with the required tables"""
    conn = get_db_connection()
    try:
        cursor = conn.cursor()
        for statement in SCHEMA:
            cursor.execute(statement)
        conn.commit()
        logger.info(f"Database initialized successfully: {db_pool.db_path}")
    finally:
        release_db_connection(conn)
