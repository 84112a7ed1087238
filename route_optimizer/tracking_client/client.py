"""Client for the upstream tracking platform (Traccar-compatible REST API)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..config import REQUEST_TIMEOUT, TRACCAR_URL
from ..errors import TrackingAPIError
from ..models import Trajectory
from ..parsing import format_datetime, parse_positions
from .response_handling import check_response, decode_json
from .session import create_session

LOGGER = logging.getLogger(__name__)

ROUTE_REPORT_PATH = "/api/reports/route"
POSITIONS_PATH = "/api/positions"
DEVICES_PATH = "/api/devices"


class TrackingClient:
    """Thin wrapper over the tracking API that returns normalised trajectories.

    Every call is bounded by ``timeout`` seconds. Network failures, timeouts,
    non-2xx answers and undecodable bodies surface as
    :class:`~route_optimizer.errors.TrackingAPIError`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = REQUEST_TIMEOUT,
        speed_unit: Optional[str] = None,
    ) -> None:
        self.base_url = (base_url or TRACCAR_URL).rstrip("/")
        self._session = session or create_session()
        self._timeout = timeout
        self._speed_unit = speed_unit

    def get_devices(self) -> List[Dict[str, Any]]:
        payload = self._get_json(DEVICES_PATH)
        if not isinstance(payload, list):
            raise TrackingAPIError("Device list response was not a JSON array")
        return payload

    def get_route_report(
        self,
        device_id: int,
        start: datetime,
        end: datetime,
        limit: Optional[int] = None,
    ) -> Trajectory:
        """Return the historical route for ``device_id`` within ``start``..``end``."""

        params: Dict[str, Any] = {
            "deviceId": device_id,
            "from": format_datetime(start),
            "to": format_datetime(end),
        }
        if limit:
            params["limit"] = limit
        payload = self._get_json(ROUTE_REPORT_PATH, params)
        return parse_positions(payload, speed_unit=self._speed_unit)

    def get_positions(self, device_id: int) -> Trajectory:
        """Return whatever positions the platform currently holds for ``device_id``."""

        payload = self._get_json(POSITIONS_PATH, {"deviceId": device_id})
        return parse_positions(payload, speed_unit=self._speed_unit)

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        context = f"GET {path}"
        LOGGER.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.Timeout as exc:
            raise TrackingAPIError(
                f"{context} timed out after {self._timeout:.0f}s"
            ) from exc
        except requests.RequestException as exc:
            raise TrackingAPIError(f"{context} failed: {exc}") from exc
        check_response(response, context)
        return decode_json(response, context)
