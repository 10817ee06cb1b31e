"""
Single-record-per-user stores (preferences, sessions, saved searches).

One generic implementation per backend, parametrized by the table and payload
column, replaces a hand-written adapter per resource type.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Dict, List, Protocol, Type

from sqlalchemy import delete, select, update

from user_info.db import (
    Database,
    InMemoryUserDirectory,
    PreferencesRow,
    SavedSearchesRow,
    SessionsRow,
    SqlUserDirectory,
    UserRow,
    new_id,
)


@dataclass
class Record:
    id: str
    user_id: str
    payload: str


@dataclass(frozen=True)
class ResourceTable:
    """Where one resource type lives: table row class and payload column."""

    name: str
    row: Type
    column: str

    @property
    def table(self) -> str:
        return self.row.__tablename__


PREFERENCES_TABLE = ResourceTable("preferences", PreferencesRow, "preferences")
SESSIONS_TABLE = ResourceTable("sessions", SessionsRow, "session")
SEARCHES_TABLE = ResourceTable("searches", SavedSearchesRow, "saved_searches")


class RecordStore(Protocol):
    """Interface for one resource type's storage."""

    def user_exists(self, username: str) -> bool:
        ...

    def has_record(self, username: str) -> bool:
        ...

    def get_records(self, username: str) -> List[Record]:
        ...

    def insert(self, username: str, payload: str) -> Record:
        ...

    def update(self, username: str, payload: str) -> None:
        ...

    def delete(self, username: str) -> None:
        ...


class InMemoryRecordStore:
    """Simple in-memory store for development and tests."""

    def __init__(self, users: InMemoryUserDirectory, resource: ResourceTable):
        self.users = users
        self.resource = resource
        self._lock = threading.Lock()
        self.records: Dict[str, List[Record]] = {}

    def user_exists(self, username: str) -> bool:
        return self.users.user_exists(username)

    def has_record(self, username: str) -> bool:
        if not self.users.user_exists(username):
            return False
        return bool(self.records.get(self.users.user_id(username)))

    def get_records(self, username: str) -> List[Record]:
        if not self.users.user_exists(username):
            return []
        return list(self.records.get(self.users.user_id(username), []))

    def insert(self, username: str, payload: str) -> Record:
        user_id = self.users.user_id(username)
        record = Record(id=new_id(), user_id=user_id, payload=payload)
        with self._lock:
            self.records.setdefault(user_id, []).append(record)
        return record

    def update(self, username: str, payload: str) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            for record in self.records.get(user_id, []):
                record.payload = payload

    def delete(self, username: str) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            self.records.pop(user_id, None)


class SqlRecordStore:
    """SQLAlchemy-backed store for one single-record resource table."""

    def __init__(
        self,
        database: Database,
        resource: ResourceTable,
        users: SqlUserDirectory | None = None,
    ):
        self.database = database
        self.resource = resource
        self.users = users or SqlUserDirectory(database)

    def _to_record(self, row) -> Record:
        return Record(
            id=row.id,
            user_id=row.user_id,
            payload=getattr(row, self.resource.column),
        )

    def _owned_by(self, username: str):
        row = self.resource.row
        return (
            select(row)
            .join(UserRow, row.user_id == UserRow.id)
            .where(UserRow.username == username)
        )

    def user_exists(self, username: str) -> bool:
        return self.users.user_exists(username)

    def has_record(self, username: str) -> bool:
        with self.database.session() as session:
            stmt = self._owned_by(username).limit(1)
            return session.execute(stmt).first() is not None

    def get_records(self, username: str) -> List[Record]:
        with self.database.session() as session:
            rows = session.execute(self._owned_by(username)).scalars().all()
            return [self._to_record(row) for row in rows]

    def insert(self, username: str, payload: str) -> Record:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            row = self.resource.row(id=new_id(), user_id=user_id)
            setattr(row, self.resource.column, payload)
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_record(row)

    def update(self, username: str, payload: str) -> None:
        user_id = self.users.user_id(username)
        row = self.resource.row
        with self.database.session() as session:
            session.execute(
                update(row)
                .where(row.user_id == user_id)
                .values({self.resource.column: payload})
            )
            session.commit()

    def delete(self, username: str) -> None:
        user_id = self.users.user_id(username)
        row = self.resource.row
        with self.database.session() as session:
            session.execute(delete(row).where(row.user_id == user_id))
            session.commit()
