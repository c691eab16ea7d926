"""
Key-value persistence port.

The application state (profile blob, audit log, theme and auth flags) is
stored as string values under fixed keys, the whole value rewritten on every
change. Last writer wins.
"""

from __future__ import annotations

from typing import Optional, Protocol

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine

PROFILE_KEY = "smartfinance_profile_v1"
THEME_KEY = "smartfinance_theme"
AUTH_KEY = "smartfinance_auth"
AUDIT_LOG_KEY = "smartfinance_audit_log"
PENDING_OTP_KEY = "smartfinance_pending_otp"

metadata = MetaData()

kv_entries = Table(
    "kv_entries",
    metadata,
    Column("key", String(255), primary_key=True),
    Column("value", Text, nullable=False),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryStore:
    def __init__(self, initial: Optional[dict[str, str]] = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def clear(self) -> None:
        self._values.clear()


class SQLKeyValueStore:
    """Store backed by a single ``kv_entries`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine
        metadata.create_all(engine)

    def get(self, key: str) -> Optional[str]:
        with self._engine.begin() as conn:
            return conn.execute(
                select(kv_entries.c.value).where(kv_entries.c.key == key)
            ).scalar_one_or_none()

    def set(self, key: str, value: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                update(kv_entries)
                .where(kv_entries.c.key == key)
                .values(value=value, updated_at=func.now())
            )
            if result.rowcount == 0:
                conn.execute(insert(kv_entries).values(key=key, value=value))

    def delete(self, key: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(kv_entries).where(kv_entries.c.key == key))

    def clear(self) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(kv_entries))


class BooleanFlag:
    """A boolean persisted as the strings ``"true"``/``"false"``."""

    def __init__(self, store: KeyValueStore, key: str) -> None:
        self._store = store
        self._key = key

    def get(self) -> bool:
        return self._store.get(self._key) == "true"

    def set(self, value: bool) -> None:
        self._store.set(self._key, "true" if value else "false")


def create_store(database_url: str) -> SQLKeyValueStore:
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return SQLKeyValueStore(create_engine(database_url, connect_args=connect_args))
