"""Tracking platform client package."""

from .client import TrackingClient
from .session import basic_auth_token, create_session

__all__ = ["TrackingClient", "basic_auth_token", "create_session"]
