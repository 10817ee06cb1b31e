"""
Dependency wiring for the FastAPI app.

Everything a request needs hangs off one ``AppContext`` built at startup and
stored on ``app.state``, so tests can hand ``create_app`` their own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from fastapi import Request

from user_info.bags import BagStore, InMemoryBagStore, SqlBagStore
from user_info.config import Settings, get_settings
from user_info.db import Database, InMemoryUserDirectory, SqlUserDirectory
from user_info.records import InMemoryRecordStore, SqlRecordStore
from user_info.resources import RESOURCE_KINDS, RecordService, ResourceKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionInfo:
    app_version: str = ""
    git_ref: str = ""
    built_by: str = ""

    def lines(self) -> list[str]:
        lines = []
        if self.app_version:
            lines.append(f"App-Version: {self.app_version}")
        if self.git_ref:
            lines.append(f"Git-Ref: {self.git_ref}")
        if self.built_by:
            lines.append(f"Built-By: {self.built_by}")
        return lines


@dataclass
class AppContext:
    settings: Settings
    services: Dict[str, RecordService]
    bags: BagStore
    version: VersionInfo = field(default_factory=VersionInfo)
    database: Optional[Database] = None

    def service(self, kind: ResourceKind) -> RecordService:
        return self.services[kind.name]

    def close(self) -> None:
        if self.database is not None:
            self.database.dispose()


def in_memory_context(
    settings: Settings | None = None,
    users: InMemoryUserDirectory | None = None,
) -> AppContext:
    """Context backed by in-memory stores that share one user directory."""
    settings = settings or get_settings()
    users = users or InMemoryUserDirectory()
    services = {
        kind.name: RecordService(kind, InMemoryRecordStore(users, kind.table))
        for kind in RESOURCE_KINDS
    }
    return AppContext(
        settings=settings,
        services=services,
        bags=InMemoryBagStore(users),
        version=version_info(settings),
    )


def sql_context(settings: Settings, database: Database | None = None) -> AppContext:
    database = database or Database(settings.database_url)
    users = SqlUserDirectory(database)
    services = {
        kind.name: RecordService(kind, SqlRecordStore(database, kind.table, users))
        for kind in RESOURCE_KINDS
    }
    return AppContext(
        settings=settings,
        services=services,
        bags=SqlBagStore(database, users),
        version=version_info(settings),
        database=database,
    )


def version_info(settings: Settings) -> VersionInfo:
    return VersionInfo(
        app_version=settings.app_version,
        git_ref=settings.git_ref,
        built_by=settings.built_by,
    )


def build_context(settings: Settings | None = None) -> AppContext:
    settings = settings or get_settings()
    if settings.use_in_memory_backends or not settings.database_url:
        logger.info("Using in-memory stores")
        return in_memory_context(settings)
    logger.info("Connecting to the database...")
    context = sql_context(settings)
    logger.info("Connected to the database.")
    return context


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_bag_store(request: Request) -> BagStore:
    return get_context(request).bags
