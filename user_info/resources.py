"""
The per-user document lifecycle shared by preferences, sessions and saved
searches: check the user, decide insert vs. update, normalize the result.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from user_info.envelope import EnvelopeCodec, PayloadCodec, RawCodec
from user_info.errors import ClientInputError, UserNotFoundError
from user_info.records import (
    PREFERENCES_TABLE,
    SEARCHES_TABLE,
    SESSIONS_TABLE,
    RecordStore,
    ResourceTable,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceKind:
    """Configuration for one single-record resource type."""

    name: str
    table: ResourceTable
    codec: PayloadCodec
    greeting: str


PREFERENCES = ResourceKind(
    name="preferences",
    table=PREFERENCES_TABLE,
    codec=EnvelopeCodec("preferences", body_error_status=500),
    greeting="Hello from user-preferences.\n",
)

SESSIONS = ResourceKind(
    name="sessions",
    table=SESSIONS_TABLE,
    codec=EnvelopeCodec("session", body_error_status=500),
    greeting="Hello from user-sessions.\n",
)

SEARCHES = ResourceKind(
    name="searches",
    table=SEARCHES_TABLE,
    codec=RawCodec("saved_searches", body_error_status=400),
    greeting="Hello from saved-searches.\n",
)

RESOURCE_KINDS = (PREFERENCES, SESSIONS, SEARCHES)


def require_username(username: str | None) -> str:
    if username is None or not username.strip():
        raise ClientInputError("Missing username in URL")
    return username


class RecordService:
    """
    Request lifecycle for a single-record resource.

    Insert vs. update is decided by a separate has_record read, with no
    transaction around the read and the write. Concurrent first writes for
    the same user race; the loser hits the table's unique user_id constraint
    and gets a StoreError rather than creating a second row.
    """

    def __init__(self, kind: ResourceKind, store: RecordStore):
        self.kind = kind
        self.store = store

    def _require_user(self, username: str) -> str:
        username = require_username(username)
        if not self.store.user_exists(username):
            raise UserNotFoundError(username)
        return username

    def _stored_payload(self, username: str) -> str | None:
        records = self.store.get_records(username)
        if not records:
            return None
        return records[0].payload

    def fetch(self, username: str) -> Any:
        """The unwrapped document, or ``{}`` when the user has none."""
        username = self._require_user(username)
        logger.info("Getting %s for %s", self.kind.name, username)
        return self.kind.codec.render_read(self._stored_payload(username))

    def save(self, username: str, body: bytes) -> dict:
        """Insert or update the user's document and return the wrapped form."""
        username = self._require_user(username)
        self.kind.codec.parse(body)
        payload = body.decode("utf-8")

        if self.store.has_record(username):
            logger.info("Updating %s for %s", self.kind.name, username)
            self.store.update(username, payload)
        else:
            logger.info("Inserting %s for %s", self.kind.name, username)
            self.store.insert(username, payload)

        return self.kind.codec.render_write(self._stored_payload(username))

    def remove(self, username: str) -> None:
        """Delete the user's document; unknown users and missing records are no-ops."""
        username = require_username(username)
        try:
            if not self.store.user_exists(username):
                return
            if not self.store.has_record(username):
                return
            logger.info("Deleting %s for %s", self.kind.name, username)
            self.store.delete(username)
        except UserNotFoundError:
            # User vanished between the existence check and the delete.
            return
