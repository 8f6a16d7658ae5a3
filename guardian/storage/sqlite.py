"""
SQLite-backed storage — one connection per operation, entity bodies kept as
JSON columns next to the few fields queries need.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..blocking.models import BlockList
from ..challenges.models import ChallengeAttempt
from ..errors import StorageError
from ..focus.models import FocusSession, UserStats
from .base import Storage

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS block_lists (
        owner_id      TEXT PRIMARY KEY,
        last_updated  INTEGER NOT NULL DEFAULT 0,
        data_json     TEXT    NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS active_sessions (
        owner_id      TEXT PRIMARY KEY,
        session_id    TEXT    NOT NULL,
        data_json     TEXT    NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS session_history (
        id            INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id      TEXT    NOT NULL,
        session_id    TEXT    NOT NULL UNIQUE,
        start_time    INTEGER NOT NULL,
        data_json     TEXT    NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_history_owner ON session_history(owner_id, start_time)",
    """
    CREATE TABLE IF NOT EXISTS challenge_attempts (
        id            INTEGER PRIMARY KEY AUTOINCREMENT,
        owner_id      TEXT    NOT NULL,
        attempted_at  INTEGER NOT NULL,
        data_json     TEXT    NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_attempts_owner ON challenge_attempts(owner_id, attempted_at)",
    """
    CREATE TABLE IF NOT EXISTS user_settings (
        owner_id      TEXT PRIMARY KEY,
        data_json     TEXT    NOT NULL DEFAULT '{}'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_stats (
        owner_id      TEXT PRIMARY KEY,
        data_json     TEXT    NOT NULL DEFAULT '{}'
    )
    """,
)


class SQLiteStorage(Storage):
    """Thread-safe SQLite-backed store."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._init_db()

    # ------------------------------------------------------------------
    # Block lists
    # ------------------------------------------------------------------

    def load_block_list(self, owner_id: str) -> Optional[BlockList]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data_json FROM block_lists WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        return BlockList.from_dict(json.loads(row[0])) if row else None

    def save_block_list(self, block_list: BlockList) -> None:
        with self._conn() as conn:
            conn.execute(
                """
                INSERT INTO block_lists (owner_id, last_updated, data_json)
                VALUES (?, ?, ?)
                ON CONFLICT(owner_id) DO UPDATE SET
                    last_updated = excluded.last_updated,
                    data_json    = excluded.data_json
                """,
                (block_list.owner_id, block_list.last_updated, json.dumps(block_list.to_dict())),
            )

    # ------------------------------------------------------------------
    # Focus sessions
    # ------------------------------------------------------------------

    def load_active_session(self, owner_id: str) -> Optional[FocusSession]:
        with self._conn() as conn:
            row = conn.execute(
                "SELECT data_json FROM active_sessions WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        return FocusSession.from_dict(json.loads(row[0])) if row else None

    def claim_active_session(self, session: FocusSession) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "INSERT OR IGNORE INTO active_sessions (owner_id, session_id, data_json) "
                "VALUES (?, ?, ?)",
                (session.owner_id, session.id, json.dumps(session.to_dict())),
            )
            return cur.rowcount == 1

    def save_active_session(self, session: FocusSession) -> None:
        with self._conn() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO active_sessions (owner_id, session_id, data_json) "
                "VALUES (?, ?, ?)",
                (session.owner_id, session.id, json.dumps(session.to_dict())),
            )

    def clear_active_session(self, owner_id: str, session_id: str) -> bool:
        with self._conn() as conn:
            cur = conn.execute(
                "DELETE FROM active_sessions WHERE owner_id = ? AND session_id = ?",
                (owner_id, session_id),
            )
            return cur.rowcount == 1

    def append_to_history(self, session: FocusSession) -> None:
        with self._conn() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO session_history "
                "(owner_id, session_id, start_time, data_json) VALUES (?, ?, ?, ?)",
                (session.owner_id, session.id, session.start_time, json.dumps(session.to_dict())),
            )

    def load_history(self, owner_id: str, limit: int = 50, offset: int = 0) -> List[FocusSession]:
        with self._conn() as conn:
            rows = conn.execute(
                "SELECT data_json FROM session_history WHERE owner_id = ? "
                "ORDER BY start_time DESC, id DESC LIMIT ? OFFSET ?",
                (owner_id, limit, offset),
            ).fetchall()
        return [FocusSession.from_dict(json.loads(r[0])) for r in rows]

    # ------------------------------------------------------------------
    # Challenge attempts
    # ------------------------------------------------------------------

    def append_challenge_attempt(self, attempt: ChallengeAttempt) -> None:
        with self._conn() as conn:
            conn.execute(
                "INSERT INTO challenge_attempts (owner_id, attempted_at, data_json) "
                "VALUES (?, ?, ?)",
                (attempt.owner_id, attempt.attempted_at, json.dumps(attempt.to_dict())),
            )

    def load_challenge_attempts(
        self,
        owner_id: str,
        since: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[ChallengeAttempt]:
        clauses = ["owner_id = ?"]
        params: list = [owner_id]
        if since is not None:
            clauses.append("attempted_at >= ?")
            params.append(since)
        params.append(-1 if limit is None else limit)

        with self._conn() as conn:
            rows = conn.execute(
                f"SELECT data_json FROM challenge_attempts WHERE {' AND '.join(clauses)} "
                f"ORDER BY id DESC LIMIT ?",
                params,
            ).fetchall()
        # newest-first from the query; callers want chronological
        return [ChallengeAttempt.from_dict(json.loads(r[0])) for r in reversed(rows)]

    def prune_challenge_attempts(self, owner_id: str, keep: int) -> int:
        with self._conn() as conn:
            cur = conn.execute(
                """
                DELETE FROM challenge_attempts
                WHERE owner_id = ? AND id NOT IN (
                    SELECT id FROM challenge_attempts
                    WHERE owner_id = ? ORDER BY id DESC LIMIT ?
                )
                """,
                (owner_id, owner_id, keep),
            )
            return cur.rowcount

    # ------------------------------------------------------------------
    # Settings and stats
    # ------------------------------------------------------------------

    def load_settings(self, owner_id: str) -> Dict[str, Any]:
        return self._load_json("user_settings", owner_id)

    def save_settings(self, owner_id: str, settings: Dict[str, Any]) -> None:
        self._save_json("user_settings", owner_id, settings)

    def load_user_stats(self, owner_id: str) -> UserStats:
        return UserStats.from_dict(self._load_json("user_stats", owner_id))

    def save_user_stats(self, owner_id: str, stats: UserStats) -> None:
        self._save_json("user_stats", owner_id, stats.to_dict())

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load_json(self, table: str, owner_id: str) -> Dict[str, Any]:
        with self._conn() as conn:
            row = conn.execute(
                f"SELECT data_json FROM {table} WHERE owner_id = ?", (owner_id,)
            ).fetchone()
        return json.loads(row[0]) if row else {}

    def _save_json(self, table: str, owner_id: str, data: Dict[str, Any]) -> None:
        with self._conn() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO {table} (owner_id, data_json) VALUES (?, ?)",
                (owner_id, json.dumps(data)),
            )

    def _init_db(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def _conn(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except sqlite3.Error as exc:
            raise StorageError(f"Could not open database: {exc}") from exc
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            logger.error("SQLite operation failed: %s", exc)
            raise StorageError(f"Storage operation failed: {exc}") from exc
        finally:
            conn.close()
