"""Dataclasses describing GPS samples, optimization settings and results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(slots=True)
class Position:
    """One normalised GPS sample. Value data, scoped to a single request."""

    latitude: float
    longitude: float
    timestamp: Optional[datetime] = None
    speed: float = 0.0
    course: Optional[float] = None
    accuracy: Optional[float] = None
    device_id: Optional[int] = None
    position_id: Optional[int] = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.position_id,
            "deviceId": self.device_id,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "speed": self.speed,
            "course": self.course,
            "accuracy": self.accuracy,
            "deviceTime": self.timestamp.isoformat() if self.timestamp else None,
            "attributes": dict(self.attributes),
        }


Trajectory = List[Position]


@dataclass(slots=True)
class OptimizationOptions:
    """Tuning knobs for the optimization pipeline.

    ``min_time_interval`` is expressed in milliseconds, speeds in km/h and
    distances in metres.
    """

    tolerance: float = 10.0
    min_speed: float = 5.0
    max_speed: float = 200.0
    min_accuracy: float = 100.0
    min_time_interval: int = 30000
    preserve_stops: bool = True
    preserve_speed_changes: bool = True
    enable_accuracy_filter: bool = True
    enable_speed_filter: bool = True
    enable_time_filter: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tolerance": self.tolerance,
            "minSpeed": self.min_speed,
            "maxSpeed": self.max_speed,
            "minAccuracy": self.min_accuracy,
            "minTimeInterval": self.min_time_interval,
            "preserveStops": self.preserve_stops,
            "preserveSpeedChanges": self.preserve_speed_changes,
            "enableAccuracyFilter": self.enable_accuracy_filter,
            "enableSpeedFilter": self.enable_speed_filter,
            "enableTimeFilter": self.enable_time_filter,
        }


@dataclass(slots=True)
class OptimizationStatistics:
    """Per-stage removal counts, each measured against the raw input."""

    accuracy_filtered: int = 0
    speed_filtered: int = 0
    time_filtered: int = 0
    douglas_peucker_reduced: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "accuracyFiltered": self.accuracy_filtered,
            "speedFiltered": self.speed_filtered,
            "timeFiltered": self.time_filtered,
            "douglasPeuckerReduced": self.douglas_peucker_reduced,
        }


@dataclass(slots=True)
class OptimizationResult:
    original_count: int
    optimized_count: int
    reduction_percentage: float
    optimized_positions: Trajectory
    statistics: OptimizationStatistics
    options: OptimizationOptions

    def to_dict(self, include_positions: bool = False) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "originalCount": self.original_count,
            "optimizedCount": self.optimized_count,
            "reductionPercentage": self.reduction_percentage,
            "statistics": self.statistics.to_dict(),
            "options": self.options.to_dict(),
        }
        if include_positions:
            payload["optimizedPositions"] = [
                pos.to_dict() for pos in self.optimized_positions
            ]
        return payload
