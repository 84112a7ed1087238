"""Central error types used across the application."""

from __future__ import annotations


class TrackingAPIError(RuntimeError):
    """Base error for tracking platform failures (network, timeout, non-2xx)."""


class TrackingAuthError(TrackingAPIError):
    """Raised when the tracking platform rejects the configured credentials."""


class TrackingNotFoundError(TrackingAPIError):
    """Raised when a device or report does not exist upstream."""


class OptimizationServiceError(RuntimeError):
    """Raised when the remote optimization service is unreachable or misbehaves."""


__all__ = [
    "TrackingAPIError",
    "TrackingAuthError",
    "TrackingNotFoundError",
    "OptimizationServiceError",
]
