"""
SQLite persistence for the Google sync token and sync run history.

The state database lives next to the configuration file (sync.db). It
also provides the two-method token store the contact fetcher depends on.
"""

import sqlite3
from collections.abc import Generator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

# SQL Schema for sync state and run history tables
SCHEMA = """
CREATE TABLE IF NOT EXISTS sync_state (
    id INTEGER PRIMARY KEY,
    account_id TEXT NOT NULL,
    sync_token TEXT,
    last_sync_at TEXT,
    UNIQUE(account_id)
);

CREATE INDEX IF NOT EXISTS idx_sync_state_account ON sync_state(account_id);

CREATE TABLE IF NOT EXISTS sync_runs (
    id INTEGER PRIMARY KEY,
    account_id TEXT NOT NULL,
    database_id TEXT NOT NULL,
    is_full_sync BOOLEAN NOT NULL,
    changed INTEGER NOT NULL DEFAULT 0,
    upserted INTEGER NOT NULL DEFAULT 0,
    archived INTEGER NOT NULL DEFAULT 0,
    failed INTEGER NOT NULL DEFAULT 0,
    finished_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_sync_runs_account ON sync_runs(account_id);
"""

# Account identifier used when a single Google account is synced
DEFAULT_ACCOUNT_ID = "google"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncDatabase:
    """
    SQLite database manager for sync state.

    Provides methods for:
    - Managing the sync token per account
    - Recording the outcome of each sync run

    Usage:
        db = SyncDatabase('/path/to/sync.db')
        db.initialize()

        # Or use in-memory for testing:
        db = SyncDatabase(':memory:')
        db.initialize()
    """

    def __init__(self, db_path: str):
        """
        Create a manager; no connection is opened until first use.

        Args:
            db_path: SQLite file path, or ':memory:' for a private in-memory database
        """
        self.db_path = db_path
        self._shared_connection: Optional[sqlite3.Connection] = None

    def _get_connection(self) -> sqlite3.Connection:
        """
        Open (or reuse) a connection.

        An in-memory database only exists while its connection is open, so
        one connection is kept for the life of the manager. File databases
        get a fresh connection per operation.
        """
        if self.db_path == ":memory:":
            if self._shared_connection is None:
                self._shared_connection = sqlite3.connect(":memory:")
                self._shared_connection.row_factory = sqlite3.Row
            return self._shared_connection

        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Yield a connection that commits on success and rolls back on error.

        Yields:
            sqlite3.Connection with Row access by column name
        """
        conn = self._get_connection()
        is_shared = self.db_path == ":memory:"
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            if not is_shared:
                conn.close()

    def initialize(self) -> None:
        """Create the tables if they don't exist."""
        with self.connection() as conn:
            conn.executescript(SCHEMA)

    # =========================================================================
    # Sync State Operations
    # =========================================================================

    def get_sync_state(self, account_id: str) -> Optional[dict[str, Any]]:
        """
        Read the stored sync token and last sync time.

        Args:
            account_id: Account key (DEFAULT_ACCOUNT_ID for the single account)

        Returns:
            Dict with sync_token and last_sync_at, or None for an unknown account
        """
        with self.connection() as conn:
            cursor = conn.execute(
                "SELECT sync_token, last_sync_at FROM sync_state WHERE account_id = ?",
                (account_id,),
            )
            row = cursor.fetchone()
            if row:
                return {
                    "sync_token": row["sync_token"],
                    "last_sync_at": row["last_sync_at"],
                }
            return None

    def update_sync_state(
        self,
        account_id: str,
        sync_token: Optional[str] = None,
        last_sync_at: Optional[datetime] = None,
    ) -> None:
        """
        Store the sync token, replacing any previous one.

        Args:
            account_id: Account key (DEFAULT_ACCOUNT_ID for the single account)
            sync_token: The Google API sync token
            last_sync_at: When the token was obtained (default: now, UTC)
        """
        timestamp = last_sync_at.isoformat() if last_sync_at else _now()

        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO sync_state (account_id, sync_token, last_sync_at)
                VALUES (?, ?, ?)
                ON CONFLICT(account_id) DO UPDATE SET
                    sync_token = excluded.sync_token,
                    last_sync_at = excluded.last_sync_at
                """,
                (account_id, sync_token, timestamp),
            )

    def clear_sync_token(self, account_id: str) -> None:
        """
        Forget the sync token so the next run is a full sync.

        Args:
            account_id: Account key (DEFAULT_ACCOUNT_ID for the single account)
        """
        with self.connection() as conn:
            conn.execute(
                "UPDATE sync_state SET sync_token = NULL WHERE account_id = ?",
                (account_id,),
            )

    # =========================================================================
    # Sync Run History
    # =========================================================================

    def record_sync_run(
        self,
        account_id: str,
        database_id: str,
        is_full_sync: bool,
        changed: int = 0,
        upserted: int = 0,
        archived: int = 0,
        failed: int = 0,
    ) -> None:
        """Record the outcome of a completed sync run."""
        with self.connection() as conn:
            conn.execute(
                """
                INSERT INTO sync_runs (
                    account_id, database_id, is_full_sync,
                    changed, upserted, archived, failed, finished_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    account_id,
                    database_id,
                    is_full_sync,
                    changed,
                    upserted,
                    archived,
                    failed,
                    _now(),
                ),
            )

    def get_last_sync_run(self, account_id: str) -> Optional[dict[str, Any]]:
        """
        Get the most recent sync run for an account.

        Returns:
            Dictionary with the run's columns, or None if no run was recorded
        """
        with self.connection() as conn:
            cursor = conn.execute(
                """
                SELECT database_id, is_full_sync, changed, upserted,
                       archived, failed, finished_at
                FROM sync_runs
                WHERE account_id = ?
                ORDER BY id DESC
                LIMIT 1
                """,
                (account_id,),
            )
            row = cursor.fetchone()
            if row:
                result = dict(row)
                result["is_full_sync"] = bool(result["is_full_sync"])
                return result
            return None

    def clear_all_state(self) -> None:
        """Delete all sync state and run history."""
        with self.connection() as conn:
            conn.execute("DELETE FROM sync_state")
            conn.execute("DELETE FROM sync_runs")


class TokenStore(Protocol):
    """Durable storage for exactly one sync token."""

    def load(self) -> Optional[str]: ...

    def save(self, token: str) -> None: ...


class SyncTokenStore:
    """
    Token store backed by the sync_state table for one account.

    Usage:
        store = SyncTokenStore(db)
        store.save("token")
        store.load()  # -> "token"
    """

    def __init__(self, database: SyncDatabase, account_id: str = DEFAULT_ACCOUNT_ID):
        self.database = database
        self.account_id = account_id

    def load(self) -> Optional[str]:
        """Return the stored token, or None if there is none."""
        state = self.database.get_sync_state(self.account_id)
        if not state:
            return None
        return state.get("sync_token") or None

    def save(self, token: str) -> None:
        """Overwrite the stored token."""
        self.database.update_sync_state(self.account_id, sync_token=token)


class MemoryTokenStore:
    """
    In-memory token store.

    Used for dry runs, where fetching must not advance the persisted token.
    """

    def __init__(self, token: Optional[str] = None):
        self.token = token

    def load(self) -> Optional[str]:
        """Return the held token, or None."""
        return self.token or None

    def save(self, token: str) -> None:
        """Replace the held token."""
        self.token = token
