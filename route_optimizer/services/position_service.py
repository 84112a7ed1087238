"""Position retrieval service: fetch strategies, response cache and fallbacks.

Resolves raw positions for a device from the tracking platform, runs the
optimization pipeline, and caches the packaged response for a short TTL to
absorb UI polling. Every failure degrades to "less data" or "less optimized"
rather than an error: upstream failures fall through to the next fetch
strategy, and an optimizer failure returns the raw trajectory untouched.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Hashable, List, Optional, Sequence, Tuple

from ..config import (
    DEFAULT_POSITION_LIMIT,
    STATS_DEFAULT_DAYS,
    STATS_POSITION_LIMIT,
    STATS_TRIAL_TOLERANCES,
    TOLERANCE_BUCKET_M,
)
from ..errors import TrackingAPIError
from ..models import (
    OptimizationOptions,
    OptimizationResult,
    OptimizationStatistics,
    Position,
    Trajectory,
)
from ..optimization import optimize_coordinates
from ..parsing import format_datetime
from ..tracking_client import TrackingClient
from .cache import ResultCache

Optimizer = Callable[[Sequence[Position], OptimizationOptions], OptimizationResult]
FetchStrategy = Tuple[str, Callable[[], Trajectory]]
PositionsResponse = Dict[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class PositionServiceConfig:
    client: Optional[TrackingClient] = None
    cache: Optional[ResultCache] = None
    optimizer: Optimizer = optimize_coordinates
    default_limit: int = DEFAULT_POSITION_LIMIT
    stats_limit: int = STATS_POSITION_LIMIT
    tolerance_bucket_m: float = TOLERANCE_BUCKET_M
    trial_tolerances: Tuple[float, ...] = field(
        default_factory=lambda: tuple(STATS_TRIAL_TOLERANCES)
    )
    clock: Callable[[], datetime] = _utcnow
    logger: logging.Logger | None = None


class PositionService:
    def __init__(self, config: PositionServiceConfig | None = None):
        self.config = config or PositionServiceConfig()
        self.client = self.config.client or TrackingClient()
        self.cache = self.config.cache or ResultCache()
        self._log = self.config.logger or logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------
    # Raw retrieval
    # ------------------------------------------------------------------
    def resolve_raw(
        self,
        device_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> Trajectory:
        """Return raw positions using the first fetch strategy that yields data.

        Strategies, in order: the historical route report (needs both bounds),
        current positions filtered to the window, current positions unfiltered.
        Failed strategies are logged and skipped; exhausting them all yields an
        empty trajectory.
        """

        limit = limit or self.config.default_limit
        start, end = _as_utc(start), _as_utc(end)
        has_window = start is not None or end is not None
        current: Dict[str, Any] = {}

        def current_positions() -> Trajectory:
            # One upstream call per resolution, failures included.
            if "error" in current:
                raise current["error"]
            if "all" not in current:
                try:
                    current["all"] = self.client.get_positions(device_id)
                except Exception as exc:
                    current["error"] = exc
                    raise
            return current["all"]

        def route_report() -> Trajectory:
            return self.client.get_route_report(device_id, start, end, limit)

        def current_in_window() -> Trajectory:
            return [
                pos for pos in current_positions() if _within(pos, start, end)
            ]

        strategies: List[FetchStrategy] = []
        if start is not None and end is not None:
            strategies.append(("route report", route_report))
        if has_window:
            strategies.append(("current positions in window", current_in_window))
        strategies.append(("current positions", current_positions))

        for label, strategy in strategies:
            try:
                positions = strategy()
            except TrackingAPIError as exc:
                self._log.warning(
                    "Fetch strategy '%s' failed for device=%s: %s",
                    label,
                    device_id,
                    exc,
                )
                continue
            except Exception as exc:
                self._log.error(
                    "Fetch strategy '%s' failed for device=%s: %s",
                    label,
                    device_id,
                    exc,
                    exc_info=True,
                )
                continue
            if positions:
                self._log.info(
                    "Fetch strategy '%s' returned %d positions for device=%s",
                    label,
                    len(positions),
                    device_id,
                )
                return positions
            self._log.debug(
                "Fetch strategy '%s' returned no positions for device=%s",
                label,
                device_id,
            )

        self._log.warning("No positions available for device=%s", device_id)
        return []

    # ------------------------------------------------------------------
    # Optimized responses
    # ------------------------------------------------------------------
    def get_positions(
        self,
        device_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        limit: Optional[int] = None,
        optimize: bool = True,
        options: Optional[OptimizationOptions] = None,
    ) -> PositionsResponse:
        """Return ``{"positions": [...], "optimization": {...}}`` for a device."""

        return self._cached_response(
            "positions", device_id, start, end, limit, optimize, options
        )

    def get_history(
        self,
        device_id: int,
        start: datetime,
        end: datetime,
        *,
        limit: Optional[int] = None,
        options: Optional[OptimizationOptions] = None,
    ) -> PositionsResponse:
        """Same shape as :meth:`get_positions` over an explicit historical window."""

        return self._cached_response(
            "history", device_id, start, end, limit, True, options
        )

    def build_response(
        self,
        raw: Trajectory,
        optimize: bool,
        options: OptimizationOptions,
    ) -> PositionsResponse:
        if not raw:
            return passthrough_response([], options)
        if not optimize:
            return passthrough_response(raw, options)
        try:
            result = self.config.optimizer(raw, options)
        except Exception as exc:
            self._log.error(
                "Optimization failed for %d positions; returning raw data: %s",
                len(raw),
                exc,
                exc_info=True,
            )
            return passthrough_response(raw, options)
        optimization = result.to_dict()
        optimization["optimized"] = True
        return {
            "positions": [pos.to_dict() for pos in result.optimized_positions],
            "optimization": optimization,
        }

    def _cached_response(
        self,
        kind: str,
        device_id: int,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: Optional[int],
        optimize: bool,
        options: Optional[OptimizationOptions],
    ) -> PositionsResponse:
        start, end = _as_utc(start), _as_utc(end)
        resolved = options or OptimizationOptions()
        limit = limit or self.config.default_limit
        key = self._cache_key(kind, device_id, start, end, limit, optimize, resolved)

        def compute() -> PositionsResponse:
            raw = self.resolve_raw(device_id, start, end, limit)
            return self.build_response(raw, optimize, resolved)

        def should_cache(response: PositionsResponse) -> bool:
            if not response["positions"]:
                return False
            # Raw fallbacks after an optimizer failure are retried next time.
            return not optimize or bool(response["optimization"]["optimized"])

        return self.cache.get_or_compute(key, compute, should_cache=should_cache)

    def _cache_key(
        self,
        kind: str,
        device_id: int,
        start: Optional[datetime],
        end: Optional[datetime],
        limit: int,
        optimize: bool,
        options: OptimizationOptions,
    ) -> Hashable:
        return (
            kind,
            device_id,
            format_datetime(start) if start else None,
            format_datetime(end) if end else None,
            limit,
            optimize,
            tolerance_bucket(options.tolerance, self.config.tolerance_bucket_m),
            options.min_speed,
            options.max_speed,
            options.min_accuracy,
            options.min_time_interval,
            options.preserve_stops,
            options.preserve_speed_changes,
            options.enable_accuracy_filter,
            options.enable_speed_filter,
            options.enable_time_filter,
        )

    # ------------------------------------------------------------------
    # Optimization potential
    # ------------------------------------------------------------------
    def optimization_stats(
        self,
        device_id: int,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        *,
        days: int = STATS_DEFAULT_DAYS,
    ) -> Dict[str, Any]:
        """Estimate savings by trial-running several tolerances over the raw window."""

        start, end = _as_utc(start), _as_utc(end)
        if start is None or end is None:
            end = self.config.clock().replace(second=0, microsecond=0)
            start = end - timedelta(days=max(1, days))
        key = ("stats", device_id, format_datetime(start), format_datetime(end))

        def compute() -> Dict[str, Any]:
            raw = self.resolve_raw(device_id, start, end, self.config.stats_limit)
            return self._build_stats(device_id, start, end, raw)

        return self.cache.get_or_compute(
            key, compute, should_cache=lambda stats: stats["totalPositions"] > 0
        )

    def _build_stats(
        self,
        device_id: int,
        start: datetime,
        end: datetime,
        raw: Trajectory,
    ) -> Dict[str, Any]:
        potential: Dict[str, float] = {}
        for tolerance in self.config.trial_tolerances:
            label = f"withTolerance{tolerance:g}"
            if not raw:
                potential[label] = 0.0
                continue
            try:
                result = self.config.optimizer(
                    raw, OptimizationOptions(tolerance=tolerance)
                )
            except Exception as exc:
                self._log.error(
                    "Trial optimization at %sm failed for device=%s: %s",
                    tolerance,
                    device_id,
                    exc,
                    exc_info=True,
                )
                potential[label] = 0.0
                continue
            potential[label] = result.reduction_percentage

        reference = potential.get("withTolerance25", 0.0)
        return {
            "deviceId": device_id,
            "period": {"from": format_datetime(start), "to": format_datetime(end)},
            "totalPositions": len(raw),
            "optimizationPotential": potential,
            "recommendations": {
                "recommendedTolerance": 25 if reference > 30 else 10,
                "estimatedBandwidthSavings": round(reference),
                "estimatedStorageSavings": round(reference),
            },
        }

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------
    def get_devices(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_compute(("devices",), self.client.get_devices)

    def clear_cache(self) -> None:
        self.cache.clear()
        self._log.info("Cache cleared")


def passthrough_response(
    positions: Trajectory, options: OptimizationOptions
) -> PositionsResponse:
    """Package unoptimized positions in the standard response shape."""

    count = len(positions)
    return {
        "positions": [pos.to_dict() for pos in positions],
        "optimization": {
            "originalCount": count,
            "optimizedCount": count,
            "reductionPercentage": 0.0,
            "statistics": OptimizationStatistics().to_dict(),
            "options": options.to_dict(),
            "optimized": False,
        },
    }


def tolerance_bucket(tolerance: float, bucket_m: float) -> float:
    """Snap ``tolerance`` down to its bucket so near-identical requests share a key."""

    if bucket_m <= 0:
        return tolerance
    return math.floor(tolerance / bucket_m) * bucket_m


def _within(
    position: Position, start: Optional[datetime], end: Optional[datetime]
) -> bool:
    timestamp = position.timestamp
    if timestamp is None:
        return True
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    return True


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


__all__ = [
    "PositionService",
    "PositionServiceConfig",
    "passthrough_response",
    "tolerance_bucket",
]
