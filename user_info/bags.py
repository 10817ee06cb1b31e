"""
Bag storage: many bags per user, one of which may be marked as the default.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol

from sqlalchemy import delete, func, select

from user_info.db import (
    BagRow,
    Database,
    DefaultBagRow,
    InMemoryUserDirectory,
    SqlUserDirectory,
    UserRow,
    new_id,
)
from user_info.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class BagRecord:
    id: str
    user_id: str
    contents: dict = field(default_factory=dict)


class BagStore(Protocol):
    """Interface for bag persistence."""

    def user_exists(self, username: str) -> bool:
        ...

    def has_bags(self, username: str) -> bool:
        ...

    def has_bag(self, username: str, bag_id: str) -> bool:
        ...

    def get_bags(self, username: str) -> List[BagRecord]:
        ...

    def get_bag(self, username: str, bag_id: str) -> BagRecord:
        ...

    def add_bag(self, username: str, contents: dict) -> str:
        ...

    def update_bag(self, username: str, bag_id: str, contents: dict) -> None:
        ...

    def delete_bag(self, username: str, bag_id: str) -> None:
        ...

    def delete_all_bags(self, username: str) -> None:
        ...

    def has_default_bag(self, username: str) -> bool:
        ...

    def get_default_bag(self, username: str) -> BagRecord:
        ...

    def set_default_bag(self, username: str, bag_id: str) -> None:
        ...

    def update_default_bag(self, username: str, contents: dict) -> None:
        ...

    def delete_default_bag(self, username: str) -> None:
        ...


class _DefaultBagMixin(ABC):
    """
    Default-bag behavior shared by both backends. A default marker that points
    at a deleted bag counts as no default, and reading the default creates an
    empty one when there is none.

    Check and create run under one lock per store, so concurrent first reads
    in this process agree on one bag. Separate processes sharing a database
    can still each create a default; the last marker written wins and the
    other bag is left as an ordinary bag.
    """

    _default_lock: threading.Lock

    @abstractmethod
    def _find_default_bag(self, username: str) -> Optional[BagRecord]:
        ...

    def has_default_bag(self, username: str) -> bool:
        return self._find_default_bag(username) is not None

    def create_default_bag(self, username: str) -> BagRecord:
        bag_id = self.add_bag(username, {})
        self.set_default_bag(username, bag_id)
        logger.info("Created default bag %s for %s", bag_id, username)
        return self.get_bag(username, bag_id)

    def get_default_bag(self, username: str) -> BagRecord:
        with self._default_lock:
            bag = self._find_default_bag(username)
            if bag is None:
                return self.create_default_bag(username)
            return bag

    def update_default_bag(self, username: str, contents: dict) -> None:
        bag = self.get_default_bag(username)
        self.update_bag(username, bag.id, contents)

    def delete_default_bag(self, username: str) -> None:
        bag = self.get_default_bag(username)
        self.delete_bag(username, bag.id)


class InMemoryBagStore(_DefaultBagMixin):
    """Simple in-memory bag store for development and tests."""

    def __init__(self, users: InMemoryUserDirectory):
        self.users = users
        self._lock = threading.Lock()
        self._default_lock = threading.Lock()
        self.bags: Dict[str, BagRecord] = {}
        self.defaults: Dict[str, str] = {}

    def _owned(self, username: str) -> List[BagRecord]:
        if not self.users.user_exists(username):
            return []
        user_id = self.users.user_id(username)
        return [bag for bag in self.bags.values() if bag.user_id == user_id]

    def user_exists(self, username: str) -> bool:
        return self.users.user_exists(username)

    def has_bags(self, username: str) -> bool:
        return bool(self._owned(username))

    def has_bag(self, username: str, bag_id: str) -> bool:
        return any(bag.id == bag_id for bag in self._owned(username))

    def get_bags(self, username: str) -> List[BagRecord]:
        return [copy.deepcopy(bag) for bag in self._owned(username)]

    def get_bag(self, username: str, bag_id: str) -> BagRecord:
        for bag in self._owned(username):
            if bag.id == bag_id:
                return copy.deepcopy(bag)
        raise NotFoundError(f"bag {bag_id} not found for user {username}")

    def add_bag(self, username: str, contents: dict) -> str:
        user_id = self.users.user_id(username)
        bag = BagRecord(id=new_id(), user_id=user_id, contents=copy.deepcopy(contents))
        with self._lock:
            self.bags[bag.id] = bag
        return bag.id

    def update_bag(self, username: str, bag_id: str, contents: dict) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            bag = self.bags.get(bag_id)
            if bag and bag.user_id == user_id:
                bag.contents = copy.deepcopy(contents)

    def delete_bag(self, username: str, bag_id: str) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            bag = self.bags.get(bag_id)
            if bag and bag.user_id == user_id:
                del self.bags[bag_id]

    def delete_all_bags(self, username: str) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            for bag_id in [b.id for b in self.bags.values() if b.user_id == user_id]:
                del self.bags[bag_id]

    def set_default_bag(self, username: str, bag_id: str) -> None:
        user_id = self.users.user_id(username)
        with self._lock:
            self.defaults[user_id] = bag_id

    def _find_default_bag(self, username: str) -> Optional[BagRecord]:
        user_id = self.users.user_id(username)
        bag_id = self.defaults.get(user_id)
        bag = self.bags.get(bag_id) if bag_id else None
        if bag is None or bag.user_id != user_id:
            return None
        return copy.deepcopy(bag)


class SqlBagStore(_DefaultBagMixin):
    """SQLAlchemy-backed bag store."""

    def __init__(self, database: Database, users: SqlUserDirectory | None = None):
        self.database = database
        self.users = users or SqlUserDirectory(database)
        self._default_lock = threading.Lock()

    def _to_bag_record(self, row: BagRow) -> BagRecord:
        return BagRecord(id=row.id, user_id=row.user_id, contents=row.contents or {})

    def _owned_by(self, username: str):
        return (
            select(BagRow)
            .join(UserRow, BagRow.user_id == UserRow.id)
            .where(UserRow.username == username)
        )

    def user_exists(self, username: str) -> bool:
        return self.users.user_exists(username)

    def has_bags(self, username: str) -> bool:
        with self.database.session() as session:
            stmt = (
                select(func.count())
                .select_from(BagRow)
                .join(UserRow, BagRow.user_id == UserRow.id)
                .where(UserRow.username == username)
            )
            return session.execute(stmt).scalar_one() > 0

    def has_bag(self, username: str, bag_id: str) -> bool:
        with self.database.session() as session:
            stmt = self._owned_by(username).where(BagRow.id == bag_id).limit(1)
            return session.execute(stmt).first() is not None

    def get_bags(self, username: str) -> List[BagRecord]:
        with self.database.session() as session:
            rows = session.execute(self._owned_by(username)).scalars().all()
            return [self._to_bag_record(row) for row in rows]

    def get_bag(self, username: str, bag_id: str) -> BagRecord:
        with self.database.session() as session:
            stmt = self._owned_by(username).where(BagRow.id == bag_id)
            row = session.execute(stmt).scalar_one_or_none()
            if row is None:
                raise NotFoundError(f"bag {bag_id} not found for user {username}")
            return self._to_bag_record(row)

    def add_bag(self, username: str, contents: dict) -> str:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            row = BagRow(id=new_id(), user_id=user_id, contents=contents)
            session.add(row)
            session.commit()
            return row.id

    def update_bag(self, username: str, bag_id: str, contents: dict) -> None:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            row = session.get(BagRow, bag_id)
            if not row or row.user_id != user_id:
                return
            row.contents = contents
            session.commit()

    def delete_bag(self, username: str, bag_id: str) -> None:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            session.execute(
                delete(BagRow).where(BagRow.id == bag_id, BagRow.user_id == user_id)
            )
            session.commit()

    def delete_all_bags(self, username: str) -> None:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            session.execute(delete(BagRow).where(BagRow.user_id == user_id))
            session.commit()

    def set_default_bag(self, username: str, bag_id: str) -> None:
        user_id = self.users.user_id(username)
        with self.database.session() as session:
            existing = session.get(DefaultBagRow, user_id)
            if existing:
                existing.bag_id = bag_id
            else:
                session.add(DefaultBagRow(user_id=user_id, bag_id=bag_id))
            session.commit()

    def _find_default_bag(self, username: str) -> Optional[BagRecord]:
        with self.database.session() as session:
            stmt = (
                select(BagRow)
                .join(DefaultBagRow, BagRow.id == DefaultBagRow.bag_id)
                .join(UserRow, DefaultBagRow.user_id == UserRow.id)
                .where(UserRow.username == username)
            )
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_bag_record(row) if row else None
