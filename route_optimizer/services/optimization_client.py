"""Client for a remote optimization service, with direct-fetch fallback.

Consumers (dashboards, scripts) call the optimization service when one is
configured and healthy. When it is missing or unreachable, positions come
straight from the tracking platform and are returned unoptimized, tagged with
``reductionPercentage = 0``, so callers always get some position data.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import requests

from ..config import (
    DEFAULT_POSITION_LIMIT,
    HEALTH_CHECK_TIMEOUT,
    OPTIMIZATION_SERVICE_URL,
    REQUEST_TIMEOUT,
    STATS_DEFAULT_DAYS,
)
from ..errors import OptimizationServiceError
from ..models import OptimizationOptions
from ..parsing import format_datetime
from .position_service import (
    PositionService,
    PositionsResponse,
    passthrough_response,
)

LOGGER = logging.getLogger(__name__)


def options_to_params(options: OptimizationOptions) -> Dict[str, str]:
    """Render options as query parameters understood by the service API."""

    params: Dict[str, str] = {}
    for key, value in options.to_dict().items():
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        else:
            params[key] = f"{value:g}" if isinstance(value, float) else str(value)
    return params


class OptimizationServiceClient:
    def __init__(
        self,
        fallback: PositionService,
        service_url: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
        health_timeout: float = HEALTH_CHECK_TIMEOUT,
    ) -> None:
        url = OPTIMIZATION_SERVICE_URL if service_url is None else service_url
        self.service_url = url.rstrip("/")
        self.fallback = fallback
        self._session = session or requests.Session()
        self._timeout = timeout
        self._health_timeout = health_timeout

    def is_available(self) -> bool:
        """Return True when the optimization service answers its health probe."""

        if not self.service_url:
            return False
        try:
            response = self._session.get(
                f"{self.service_url}/health", timeout=self._health_timeout
            )
        except requests.RequestException as exc:
            LOGGER.warning("Optimization service not available: %s", exc)
            return False
        return response.ok

    def get_optimized_positions(
        self,
        device_id: int,
        options: Optional[OptimizationOptions] = None,
    ) -> PositionsResponse:
        options = options or OptimizationOptions()
        params = {"deviceId": str(device_id), "optimize": "true"}
        params.update(options_to_params(options))
        remote = self._try_remote("/api/positions", params)
        if remote is not None:
            return remote
        raw = self.fallback.resolve_raw(device_id)
        return passthrough_response(raw, options)

    def get_optimized_history(
        self,
        device_id: int,
        start: datetime,
        end: datetime,
        options: Optional[OptimizationOptions] = None,
        *,
        limit: int = DEFAULT_POSITION_LIMIT,
    ) -> PositionsResponse:
        options = options or OptimizationOptions()
        params = {
            "deviceId": str(device_id),
            "from": format_datetime(start),
            "to": format_datetime(end),
            "limit": str(limit),
        }
        params.update(options_to_params(options))
        remote = self._try_remote("/api/history", params)
        if remote is not None:
            return remote
        raw = self.fallback.resolve_raw(device_id, start, end, limit)
        return passthrough_response(raw, options)

    def get_optimization_stats(
        self, device_id: int, days: int = STATS_DEFAULT_DAYS
    ) -> Dict[str, Any]:
        remote = self._try_remote(
            f"/api/optimization-stats/{device_id}", {"days": str(days)}
        )
        if remote is not None:
            return remote
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=days)
        return {
            "deviceId": device_id,
            "period": {"from": format_datetime(start), "to": format_datetime(end)},
            "totalPositions": 0,
            "optimizationPotential": {
                "withTolerance10": 0,
                "withTolerance25": 0,
                "withTolerance50": 0,
            },
            "recommendations": {
                "recommendedTolerance": 10,
                "estimatedBandwidthSavings": 0,
                "estimatedStorageSavings": 0,
            },
        }

    def _try_remote(self, path: str, params: Dict[str, str]) -> Optional[Any]:
        if not self.is_available():
            return None
        try:
            return self._get_json(path, params)
        except OptimizationServiceError as exc:
            LOGGER.warning("%s; falling back to direct tracking API", exc)
            return None

    def _get_json(self, path: str, params: Dict[str, str]) -> Any:
        url = f"{self.service_url}{path}"
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as exc:
            raise OptimizationServiceError(
                f"Optimization service request {path} failed: {exc}"
            ) from exc
        if not response.ok:
            raise OptimizationServiceError(
                f"Optimization service {path} answered {response.status_code}"
            )
        try:
            return response.json()
        except ValueError as exc:
            raise OptimizationServiceError(
                f"Optimization service {path} returned an undecodable body"
            ) from exc
