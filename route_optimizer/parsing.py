"""Boundary normalisation for upstream payloads and request parameters.

Upstream position objects use several aliases for the same field
(``lat``/``latitude``/``y`` ...). They are resolved here, once, into the
canonical :class:`~route_optimizer.models.Position`; nothing downstream sees
the aliasing. Malformed request parameters resolve to their defaults instead
of failing the request.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from .config import UPSTREAM_SPEED_UNIT
from .models import OptimizationOptions, Position, Trajectory

LOGGER = logging.getLogger(__name__)

KNOTS_TO_KMH = 1.852

_LATITUDE_KEYS = ("latitude", "lat", "y")
_LONGITUDE_KEYS = ("longitude", "lng", "lon", "x")
_TIME_KEYS = ("deviceTime", "fixTime", "serverTime", "timestamp", "time")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


# ---------------------------------------------------------------------------
# Scalars
# ---------------------------------------------------------------------------
def to_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or ``None`` when it is not one."""

    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def to_int(value: Any) -> Optional[int]:
    number = to_float(value)
    return int(number) if number is not None else None


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse ISO-8601 strings or epoch milliseconds into an aware UTC datetime."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        if not math.isfinite(value):
            return None
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    """Render a datetime the way the tracking API expects it (UTC, ``Z`` suffix)."""

    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _first_present(raw: Mapping[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


# ---------------------------------------------------------------------------
# Positions
# ---------------------------------------------------------------------------
def parse_position(
    raw: Mapping[str, Any], speed_unit: Optional[str] = None
) -> Optional[Position]:
    """Normalise one upstream position object; ``None`` when it has no usable fix."""

    if not isinstance(raw, Mapping):
        return None
    latitude = to_float(_first_present(raw, _LATITUDE_KEYS))
    longitude = to_float(_first_present(raw, _LONGITUDE_KEYS))
    if latitude is None or longitude is None:
        return None
    if not (-90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0):
        return None

    speed = to_float(raw.get("speed"))
    if speed is None:
        speed = 0.0
    elif (speed_unit or UPSTREAM_SPEED_UNIT) == "knots":
        speed *= KNOTS_TO_KMH

    attributes = raw.get("attributes")
    return Position(
        latitude=latitude,
        longitude=longitude,
        timestamp=parse_datetime(_first_present(raw, _TIME_KEYS)),
        speed=speed,
        course=to_float(raw.get("course")),
        accuracy=to_float(raw.get("accuracy")),
        device_id=to_int(raw.get("deviceId")),
        position_id=to_int(raw.get("id")),
        attributes=dict(attributes) if isinstance(attributes, Mapping) else {},
    )


def parse_positions(payload: Any, speed_unit: Optional[str] = None) -> Trajectory:
    """Normalise a JSON array of positions into a time-ordered trajectory.

    Samples without usable coordinates are dropped. When every sample carries
    a timestamp the trajectory is stable-sorted by time, otherwise arrival
    order is kept.
    """

    if not isinstance(payload, list):
        LOGGER.warning(
            "Expected a list of positions, got %s", type(payload).__name__
        )
        return []
    positions: Trajectory = []
    for raw in payload:
        position = parse_position(raw, speed_unit=speed_unit)
        if position is not None:
            positions.append(position)
    dropped = len(payload) - len(positions)
    if dropped:
        LOGGER.debug("Dropped %d positions without usable coordinates", dropped)
    if positions and all(pos.timestamp is not None for pos in positions):
        positions.sort(key=lambda pos: pos.timestamp)
    return positions


# ---------------------------------------------------------------------------
# Request parameters
# ---------------------------------------------------------------------------
def parse_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    return default


def parse_non_negative(value: Any, default: float) -> float:
    """Return ``value`` as a non-negative float, falling back to ``default``."""

    number = to_float(value)
    if number is None or number < 0:
        return default
    return number


def parse_positive_int(value: Any, default: int) -> int:
    number = to_int(value)
    if number is None or number <= 0:
        return default
    return number


def parse_options(
    params: Mapping[str, Any],
    base: Optional[OptimizationOptions] = None,
) -> OptimizationOptions:
    """Build options from query parameters layered over ``base`` (or the defaults)."""

    options = replace(base) if base is not None else OptimizationOptions()
    options.tolerance = parse_non_negative(params.get("tolerance"), options.tolerance)
    options.min_speed = parse_non_negative(params.get("minSpeed"), options.min_speed)
    options.max_speed = parse_non_negative(params.get("maxSpeed"), options.max_speed)
    options.min_accuracy = parse_non_negative(
        params.get("minAccuracy"), options.min_accuracy
    )
    options.min_time_interval = int(
        parse_non_negative(params.get("minTimeInterval"), options.min_time_interval)
    )
    options.preserve_stops = parse_bool(
        params.get("preserveStops"), options.preserve_stops
    )
    options.preserve_speed_changes = parse_bool(
        params.get("preserveSpeedChanges"), options.preserve_speed_changes
    )
    options.enable_accuracy_filter = parse_bool(
        params.get("enableAccuracyFilter"), options.enable_accuracy_filter
    )
    options.enable_speed_filter = parse_bool(
        params.get("enableSpeedFilter"), options.enable_speed_filter
    )
    options.enable_time_filter = parse_bool(
        params.get("enableTimeFilter"), options.enable_time_filter
    )
    return options

