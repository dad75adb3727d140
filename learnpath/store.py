"""
Key-value storage for learner state.

Provides:
- ``KeyValueStore``: the backend interface (namespaced string keys, JSON
  string values).
- ``InMemoryStore``: dict-backed, the default.
- ``SQLiteStore``: ``LearnerState`` table with WAL mode and lock-retry.
- ``ProgressRepository`` / ``PerformanceRepository``: map pydantic
  records onto a store.
"""

import logging
import os
import sqlite3
import threading
import time
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from learnpath.models import PerformanceHistory, ProgressRecord

logger = logging.getLogger(__name__)

PROGRESS_NAMESPACE = "progress"
PERFORMANCE_NAMESPACE = "performance"


# =========================================================================
# Backend interface
# =========================================================================


class KeyValueStore(ABC):
    """Namespaced string-to-string storage."""

    @abstractmethod
    def get(self, namespace: str, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None``."""

    @abstractmethod
    def put(self, namespace: str, key: str, value: str) -> None:
        """Insert or replace the value stored under *key*."""

    @abstractmethod
    def keys(self, namespace: str) -> List[str]:
        """Return every key of *namespace* in sorted order."""

    def close(self) -> None:
        """Release backend resources."""


class InMemoryStore(KeyValueStore):
    """Process-local dict store."""

    def __init__(self) -> None:
        self._data: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    def get(self, namespace: str, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get((namespace, key))

    def put(self, namespace: str, key: str, value: str) -> None:
        with self._lock:
            self._data[(namespace, key)] = value

    def keys(self, namespace: str) -> List[str]:
        with self._lock:
            return sorted(k for ns, k in self._data if ns == namespace)


# =========================================================================
# SQLite backend
# =========================================================================

_CREATE_LEARNER_STATE = """\
CREATE TABLE IF NOT EXISTS LearnerState (
    namespace   TEXT      NOT NULL,
    key         TEXT      NOT NULL,
    value       TEXT      NOT NULL,
    updated_at  TIMESTAMP,
    PRIMARY KEY (namespace, key)
);
"""

_SQLITE_LOCK_RETRIES = 5
_SQLITE_LOCK_BASE_DELAY = 0.1


def get_connection(db_path: str) -> sqlite3.Connection:
    """Return a new SQLite connection with WAL mode and row-factory enabled."""
    os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
    conn = sqlite3.connect(db_path, timeout=10, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    return conn


def _retry_on_lock(fn, *args, **kwargs):  # type: ignore[no-untyped-def]
    """Wrap *fn* with SQLite-lock retry."""
    for attempt in range(1, _SQLITE_LOCK_RETRIES + 1):
        try:
            return fn(*args, **kwargs)
        except sqlite3.OperationalError as exc:
            if "locked" in str(exc).lower() and attempt < _SQLITE_LOCK_RETRIES:
                delay = _SQLITE_LOCK_BASE_DELAY * (2 ** (attempt - 1))
                logger.warning(
                    "SQLite locked (attempt %d/%d), retrying in %.2fs",
                    attempt, _SQLITE_LOCK_RETRIES, delay,
                )
                time.sleep(delay)
            else:
                raise


class SQLiteStore(KeyValueStore):
    """Durable store backed by a single ``LearnerState`` table."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._conn = get_connection(db_path)
        # One connection shared across threads; sqlite3 serializes access.
        self._lock = threading.Lock()
        self._conn.execute(_CREATE_LEARNER_STATE)
        self._conn.commit()
        logger.info("LearnerState migration OK at %s", os.path.abspath(db_path))

    def get(self, namespace: str, key: str) -> Optional[str]:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM LearnerState WHERE namespace = ? AND key = ?",
                (namespace, key),
            ).fetchone()
        return row["value"] if row else None

    def put(self, namespace: str, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()

        def _do_put() -> None:
            self._conn.execute(
                """
                INSERT OR REPLACE INTO LearnerState (namespace, key, value, updated_at)
                VALUES (?, ?, ?, ?)
                """,
                (namespace, key, value, now),
            )
            self._conn.commit()

        with self._lock:
            _retry_on_lock(_do_put)

    def keys(self, namespace: str) -> List[str]:
        with self._lock:
            rows = self._conn.execute(
                "SELECT key FROM LearnerState WHERE namespace = ? ORDER BY key",
                (namespace,),
            ).fetchall()
        return [r["key"] for r in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()


# =========================================================================
# Repositories
# =========================================================================


class ProgressRepository:
    """Stores one ``ProgressRecord`` per learner id."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    def get(self, learner_id: str) -> Optional[ProgressRecord]:
        raw = self.store.get(PROGRESS_NAMESPACE, learner_id)
        return ProgressRecord.model_validate_json(raw) if raw else None

    def put(self, record: ProgressRecord) -> None:
        self.store.put(PROGRESS_NAMESPACE, record.learner_id, record.model_dump_json())

    def learner_ids(self) -> List[str]:
        return self.store.keys(PROGRESS_NAMESPACE)


class PerformanceRepository:
    """Stores ``PerformanceHistory`` per (scope, topic id).

    *scope* is a learner id, or ``""`` for histories not tied to a learner.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store

    @staticmethod
    def _key(scope: str, topic_id: str) -> str:
        return f"{scope}\x1f{topic_id}"

    def get(self, scope: str, topic_id: str) -> PerformanceHistory:
        raw = self.store.get(PERFORMANCE_NAMESPACE, self._key(scope, topic_id))
        if raw:
            return PerformanceHistory.model_validate_json(raw)
        return PerformanceHistory(topic_id=topic_id)

    def put(self, scope: str, history: PerformanceHistory) -> None:
        self.store.put(
            PERFORMANCE_NAMESPACE,
            self._key(scope, history.topic_id),
            history.model_dump_json(),
        )
