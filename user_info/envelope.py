"""
Envelope normalization for stored JSON documents.

Preferences and sessions have been stored both bare (``{"a": 1}``) and wrapped
under their resource key (``{"preferences": {"a": 1}}``). Reads hand back the
bare document and writes answer with the wrapped one, whichever form is in
the table.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

from user_info.errors import MalformedPayloadError, RequestBodyError


def convert(raw: str, wrap: bool, envelope_key: str) -> dict:
    """
    Normalize a raw stored payload.

    An empty payload is an empty mapping. With ``wrap`` the result is always
    ``{envelope_key: {...}}``; without it the envelope is stripped if present.
    A payload that already has ``envelope_key`` at the top level is treated as
    wrapped, so wrapping twice is a no-op. The value under the envelope key
    must itself be an object.
    """
    values: Any = {}
    if raw:
        try:
            values = json.loads(raw)
        except ValueError as exc:
            raise MalformedPayloadError(
                f"stored {envelope_key} payload is not valid JSON: {exc}"
            ) from exc
        if not isinstance(values, dict):
            raise MalformedPayloadError(
                f"stored {envelope_key} payload is not a JSON object"
            )

    if envelope_key in values and not isinstance(values[envelope_key], dict):
        raise MalformedPayloadError(
            f"stored {envelope_key} envelope does not hold a JSON object"
        )

    if not wrap:
        if envelope_key in values:
            return values[envelope_key]
        return values

    if envelope_key not in values:
        return {envelope_key: values}
    return values


def parse_body(body: bytes, *, objects_only: bool, error_status: int) -> Any:
    """Parse a request body, raising RequestBodyError with the given status."""
    try:
        parsed = json.loads(body.decode("utf-8"))
    except ValueError as exc:
        raise RequestBodyError(
            f"Error parsing request body: {exc}", status_code=error_status
        ) from exc
    if objects_only and not isinstance(parsed, dict):
        raise RequestBodyError(
            "Error parsing request body: expected a JSON object",
            status_code=error_status,
        )
    return parsed


class PayloadCodec(Protocol):
    """How one resource type validates bodies and renders stored payloads."""

    def parse(self, body: bytes) -> Any:
        ...

    def render_read(self, payload: str | None) -> Any:
        ...

    def render_write(self, payload: str | None) -> dict:
        ...


@dataclass(frozen=True)
class EnvelopeCodec:
    """Object documents that are unwrapped on read and wrapped on write."""

    envelope_key: str
    body_error_status: int = 500

    def parse(self, body: bytes) -> dict:
        parsed = parse_body(
            body, objects_only=True, error_status=self.body_error_status
        )
        if self.envelope_key in parsed and not isinstance(
            parsed[self.envelope_key], dict
        ):
            raise RequestBodyError(
                f"Error parsing request body: {self.envelope_key} must be a JSON object",
                status_code=self.body_error_status,
            )
        return parsed

    def render_read(self, payload: str | None) -> dict:
        return convert(payload or "", False, self.envelope_key)

    def render_write(self, payload: str | None) -> dict:
        return convert(payload or "", True, self.envelope_key)


@dataclass(frozen=True)
class RawCodec:
    """
    Any JSON value, returned on read exactly as stored. Writes answer with the
    stored value under ``response_key``.
    """

    response_key: str
    body_error_status: int = 400

    def parse(self, body: bytes) -> Any:
        return parse_body(
            body, objects_only=False, error_status=self.body_error_status
        )

    def render_read(self, payload: str | None) -> str:
        if not payload:
            return "{}"
        return payload

    def render_write(self, payload: str | None) -> dict:
        if not payload:
            return {self.response_key: None}
        try:
            value = json.loads(payload)
        except ValueError as exc:
            raise MalformedPayloadError(
                f"stored {self.response_key} payload is not valid JSON: {exc}"
            ) from exc
        return {self.response_key: value}
