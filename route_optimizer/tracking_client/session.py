"""HTTP session factory for tracking platform calls."""

from __future__ import annotations

import base64

import requests
from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import (
    HTTP_BACKOFF_FACTOR,
    HTTP_MAX_RETRIES,
    HTTP_POOL_CONNECTIONS,
    HTTP_POOL_MAXSIZE,
    TRACCAR_AUTH,
    TRACCAR_PASSWORD,
    TRACCAR_USER,
)

__all__ = ["basic_auth_token", "create_session"]


def _build_retry() -> Retry:
    return Retry(
        total=HTTP_MAX_RETRIES,
        # Timeouts are not retried; the caller moves on to its next strategy.
        connect=0,
        read=0,
        backoff_factor=HTTP_BACKOFF_FACTOR,
        status_forcelist=[500, 502, 503, 504],
        allowed_methods=["GET"],
        raise_on_status=False,
    )


def basic_auth_token(
    user: str | None = None,
    password: str | None = None,
    token: str | None = None,
) -> str:
    """Return the base64 basic-auth token; a pre-encoded token wins."""

    encoded = TRACCAR_AUTH if token is None else token
    if encoded:
        return encoded
    user = TRACCAR_USER if user is None else user
    password = TRACCAR_PASSWORD if password is None else password
    if not user:
        return ""
    raw = f"{user}:{password}".encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def create_session(auth_token: str | None = None) -> Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=HTTP_POOL_CONNECTIONS,
        pool_maxsize=HTTP_POOL_MAXSIZE,
        max_retries=_build_retry(),
    )
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(
        {
            "Accept-Encoding": "gzip, deflate",
            "Accept": "application/json",
        }
    )
    token = basic_auth_token() if auth_token is None else auth_token
    if token:
        session.headers["Authorization"] = f"Basic {token}"
    return session
