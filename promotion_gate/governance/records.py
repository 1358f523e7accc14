from __future__ import annotations

import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from promotion_gate.config import get_settings
from promotion_gate.schemas.core import ApprovalRecord, Build, ParameterValue

logger = logging.getLogger(__name__)

APPROVALS_TABLE_SQL = '''
CREATE TABLE IF NOT EXISTS approvals (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    build_id TEXT NOT NULL,
    process_name TEXT NOT NULL,
    principal_name TEXT,
    parameters_json TEXT NOT NULL,
    approved_at TEXT NOT NULL
);
'''

APPROVALS_INDEX_SQL = 'CREATE INDEX IF NOT EXISTS idx_approvals_build ON approvals(build_id)'


class BuildLocks:
    """One lock per build id, so approvals of different builds never contend.

    An entry lives only while some thread holds or waits for it.
    """

    def __init__(self) -> None:
        self._locks: Dict[str, threading.Lock] = {}
        self._holders: Dict[str, int] = {}
        self._global_lock = threading.Lock()

    def active(self) -> int:
        with self._global_lock:
            return len(self._locks)

    def _acquire_entry(self, build_id: str) -> threading.Lock:
        with self._global_lock:
            lock = self._locks.get(build_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[build_id] = lock
            self._holders[build_id] = self._holders.get(build_id, 0) + 1
            return lock

    def _release_entry(self, build_id: str) -> None:
        with self._global_lock:
            self._holders[build_id] -= 1
            if not self._holders[build_id]:
                del self._holders[build_id]
                del self._locks[build_id]

    @contextmanager
    def hold(self, build: Build) -> Iterator[None]:
        lock = self._acquire_entry(build.id)
        try:
            with lock:
                yield
        finally:
            self._release_entry(build.id)


class BuildRecordStore:
    """Approval records attached to builds, persisted in sqlite."""

    def __init__(self, settings=None) -> None:
        self.settings = settings or get_settings()
        self.db_path = Path(self.settings.DB_PATH)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.locks = BuildLocks()
        self._ensure_table()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def _ensure_table(self) -> None:
        with self._connect() as conn:
            conn.execute(APPROVALS_TABLE_SQL)
            conn.execute(APPROVALS_INDEX_SQL)
            conn.commit()

    def get_approvals(self, build: Build) -> List[ApprovalRecord]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT process_name, principal_name, parameters_json, approved_at "
                "FROM approvals WHERE build_id = ? ORDER BY id ASC",
                (build.id,),
            ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def find_approval(self, build: Build, process_name: str) -> Optional[ApprovalRecord]:
        for record in self.get_approvals(build):
            if record.process_name == process_name:
                return record
        return None

    def add_approval(self, build: Build, record: ApprovalRecord) -> None:
        """Attach ``record`` to ``build`` and persist it in one transaction."""
        # Sensitive values are stored masked; only the in-memory record keeps them.
        parameters = [value.masked().model_dump() for value in record.parameter_values]
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO approvals(build_id, process_name, principal_name, parameters_json, approved_at) "
                "VALUES (?, ?, ?, ?, ?)",
                (
                    build.id,
                    record.process_name,
                    record.principal_name,
                    json.dumps(parameters),
                    record.approved_at.isoformat(),
                ),
            )
            conn.commit()
        logger.debug("Attached approval of %s to %s", record.process_name, build.id)

    @staticmethod
    def _row_to_record(row) -> ApprovalRecord:
        process_name, principal_name, parameters_json, approved_at = row
        values = tuple(ParameterValue(**item) for item in json.loads(parameters_json))
        return ApprovalRecord(
            process_name=process_name,
            principal_name=principal_name,
            parameter_values=values,
            approved_at=datetime.fromisoformat(approved_at),
        )
