"""Shared HTTP response helpers for tracking platform interactions."""

from __future__ import annotations

import logging
from typing import Any, Optional, Type

import requests

from ..errors import TrackingAPIError, TrackingAuthError, TrackingNotFoundError

RequestsJSONDecodeError: Type[Exception]
if hasattr(requests.exceptions, "JSONDecodeError"):
    RequestsJSONDecodeError = requests.exceptions.JSONDecodeError
else:  # pragma: no cover - fallback for old requests versions
    RequestsJSONDecodeError = ValueError


__all__ = [
    "check_response",
    "decode_json",
    "extract_error",
]


def check_response(response: requests.Response, context: str) -> None:
    """Raise the matching tracking error for a non-success status."""

    status = response.status_code
    if 200 <= status < 300:
        return
    detail = extract_error(response)
    message = f"{context} failed (status {status})"
    if detail:
        message = f"{message} | {detail}"

    if status in (401, 403):
        logging.warning(message)
        raise TrackingAuthError(message)
    if status == 404:
        logging.info(message)
        raise TrackingNotFoundError(message)
    logging.error(message)
    raise TrackingAPIError(message)


def decode_json(response: requests.Response, context: str) -> Any:
    """Return the parsed JSON body or raise :class:`TrackingAPIError`."""

    try:
        return response.json()
    except (ValueError, RequestsJSONDecodeError) as exc:
        raise TrackingAPIError(f"{context} returned an undecodable body") from exc


def extract_error(resp: Optional[requests.Response]) -> Optional[str]:
    """Return a compact error string from the response body if present."""

    if resp is None:
        return None
    text = getattr(resp, "text", "")
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    return (trimmed[:297] + "...") if len(trimmed) > 300 else trimmed
