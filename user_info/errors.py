"""
Error taxonomy shared by the stores and the HTTP handlers.

Every error carries the HTTP status it is reported with, so handlers can let
them propagate and a single exception handler in ``create_app`` turns them
into responses.
"""

from __future__ import annotations


class UserInfoError(Exception):
    """Base class for errors surfaced to HTTP callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientInputError(UserInfoError):
    """Missing path parameters and similar caller mistakes."""

    status_code = 400


class RequestBodyError(UserInfoError):
    """
    The request body could not be parsed.

    Not a ClientInputError: the reported status is chosen per resource.
    Preferences, sessions and bag updates have always answered a bad body
    with 500, searches and new bags with 400.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(UserInfoError):
    status_code = 404


class UserNotFoundError(NotFoundError):
    """The username does not resolve to a user id."""

    def __init__(self, username: str):
        super().__init__(f"user {username} does not exist")
        self.username = username


class StoreError(UserInfoError):
    """Database connectivity, constraint or query failure."""

    status_code = 500


class MalformedPayloadError(UserInfoError):
    """A stored payload is not the JSON document it should be."""

    status_code = 500
