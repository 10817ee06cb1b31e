"""
Database plumbing: engine/session setup, table rows and username lookup.

The record and bag stores build on top of this module; an in-memory user
directory stands in for the ``users`` table in tests.
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol

from sqlalchemy import (
    JSON,
    Column,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    select,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from user_info.errors import StoreError, UserNotFoundError


def new_id() -> str:
    return uuid.uuid4().hex


class UserDirectory(Protocol):
    """Resolves usernames against the externally managed users table."""

    def user_exists(self, username: str) -> bool:
        ...

    def user_id(self, username: str) -> str:
        ...


class InMemoryUserDirectory:
    """Username -> user id map for development and tests."""

    def __init__(self, usernames: Optional[list[str]] = None):
        self._lock = threading.Lock()
        self.users: Dict[str, str] = {}
        for username in usernames or []:
            self.add_user(username)

    def add_user(self, username: str) -> str:
        with self._lock:
            if username not in self.users:
                self.users[username] = new_id()
            return self.users[username]

    def remove_user(self, username: str) -> None:
        with self._lock:
            self.users.pop(username, None)

    def user_exists(self, username: str) -> bool:
        return username in self.users

    def user_id(self, username: str) -> str:
        try:
            return self.users[username]
        except KeyError:
            raise UserNotFoundError(username) from None


class Database:
    """
    SQLAlchemy engine and session factory. Accepts any SQLAlchemy URL (e.g.,
    Postgres, or SQLite for tests).
    """

    def __init__(self, database_url: str, create_tables: bool = True):
        if not database_url:
            raise ValueError("DATABASE_URL is required for Database")
        if database_url.startswith("sqlite") and ":memory:" in database_url:
            # One shared connection so every request thread sees the same data.
            self.engine = create_engine(
                database_url,
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        else:
            self.engine = create_engine(
                database_url,
                future=True,
                pool_pre_ping=True,
                pool_recycle=1800,
            )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        if create_tables:
            Base.metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Yield a session, reporting any database failure as StoreError."""
        try:
            with self.Session() as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(str(exc)) from exc

    def dispose(self) -> None:
        self.engine.dispose()


class SqlUserDirectory:
    def __init__(self, database: Database):
        self.database = database

    def _lookup(self, username: str) -> Optional[str]:
        with self.database.session() as session:
            stmt = select(UserRow.id).where(UserRow.username == username)
            return session.execute(stmt).scalar_one_or_none()

    def user_exists(self, username: str) -> bool:
        return self._lookup(username) is not None

    def user_id(self, username: str) -> str:
        user_id = self._lookup(username)
        if user_id is None:
            raise UserNotFoundError(username)
        return user_id


Base = declarative_base()


class UserRow(Base):
    """Owned by the user-management system; only read here."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    username = Column(String, nullable=False, unique=True, index=True)


class PreferencesRow(Base):
    __tablename__ = "user_preferences"
    __table_args__ = (UniqueConstraint("user_id"),)

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    preferences = Column(Text, nullable=False, default="")


class SessionsRow(Base):
    __tablename__ = "user_sessions"
    __table_args__ = (UniqueConstraint("user_id"),)

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    session = Column(Text, nullable=False, default="")


class SavedSearchesRow(Base):
    __tablename__ = "user_saved_searches"
    __table_args__ = (UniqueConstraint("user_id"),)

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False)
    saved_searches = Column(Text, nullable=False, default="")


class BagRow(Base):
    __tablename__ = "bags"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    contents = Column(JSON, nullable=False)


class DefaultBagRow(Base):
    __tablename__ = "default_bags"

    user_id = Column(String, ForeignKey("users.id"), primary_key=True)
    bag_id = Column(String, nullable=False)
