"""
User-visible activity history.

Entries are kept newest first and capped; the log is never read by the
financial calculations. Failing to persist an entry must not break the
action that produced it, so write errors are logged and dropped.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

import structlog
from pydantic import BaseModel, TypeAdapter, ValidationError

from backend.storage import AUDIT_LOG_KEY, KeyValueStore

MAX_ENTRIES = 100

logger = structlog.get_logger(__name__)


class AuditAction(str, Enum):
    OTP_REQUEST = "OTP_REQUEST"
    LOGIN_SUCCESS = "LOGIN_SUCCESS"
    LOGIN_FAILED = "LOGIN_FAILED"
    LOGOUT = "LOGOUT"
    PROFILE_UPDATE = "PROFILE_UPDATE"
    SETTINGS_CHANGE = "SETTINGS_CHANGE"
    EXPENSE_ADDED = "EXPENSE_ADDED"
    EXPENSE_DELETED = "EXPENSE_DELETED"
    DATA_IMPORT = "DATA_IMPORT"
    DATA_EXPORT = "DATA_EXPORT"
    DATA_RESET = "DATA_RESET"
    GOAL_ADDED = "GOAL_ADDED"
    GOAL_UPDATED = "GOAL_UPDATED"
    GOAL_DELETED = "GOAL_DELETED"
    AI_REPORT_REQUESTED = "AI_REPORT_REQUESTED"


class AuditLogEntry(BaseModel):
    timestamp: datetime
    action: str
    details: Optional[str] = None


_entries_adapter = TypeAdapter(list[AuditLogEntry])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog:
    def __init__(
        self,
        store: KeyValueStore,
        key: str = AUDIT_LOG_KEY,
        max_entries: int = MAX_ENTRIES,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._key = key
        self._max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()

    def record(self, action: AuditAction | str, details: Optional[str] = None) -> AuditLogEntry:
        tag = action.value if isinstance(action, AuditAction) else action
        entry = AuditLogEntry(timestamp=self._clock(), action=tag, details=details)
        logger.info("audit_event", action=tag, details=details)

        with self._lock:
            try:
                updated = [entry, *self.entries()][: self._max_entries]
                self._store.set(self._key, _entries_adapter.dump_json(updated).decode("utf-8"))
            except Exception as exc:
                logger.error("audit_storage_failed", action=tag, error=str(exc))
        return entry

    def entries(self) -> list[AuditLogEntry]:
        raw = self._store.get(self._key)
        if not raw:
            return []
        try:
            return _entries_adapter.validate_json(raw)
        except ValidationError as exc:
            logger.warning("audit_log_unreadable", error=str(exc))
            return []

    def clear(self) -> None:
        with self._lock:
            self._store.delete(self._key)
