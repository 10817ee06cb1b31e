"""
FastAPI application entry point for the user-info service.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from user_info import __version__
from user_info.bag_routes import router as bag_router
from user_info.dependencies import AppContext, build_context
from user_info.errors import UserInfoError, UserNotFoundError
from user_info.routes import router

logger = logging.getLogger(__name__)


def handle_user_info_error(request: Request, exc: UserInfoError):
    """Log the failure and answer with its message as plain text."""
    logger.error(exc.message)
    if isinstance(exc, UserNotFoundError):
        return JSONResponse(status_code=exc.status_code, content={"user": exc.username})
    return PlainTextResponse(exc.message, status_code=exc.status_code)


def create_app(context: AppContext | None = None) -> FastAPI:
    context = context or build_context()
    app = FastAPI(
        title="user-info",
        version=context.version.app_version or __version__,
    )
    app.state.context = context
    app.add_exception_handler(UserInfoError, handle_user_info_error)
    app.include_router(router)
    app.include_router(bag_router)
    return app
