from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Dict, List

import pytest
import requests

from factories import T0, meridian_track
from route_optimizer.models import OptimizationOptions
from route_optimizer.services import OptimizationServiceClient
from route_optimizer.services.optimization_client import options_to_params


class _Response:
    def __init__(self, status_code: int = 200, payload: Any = None) -> None:
        self.status_code = status_code
        self.ok = 200 <= status_code < 300
        self._payload = payload

    def json(self) -> Any:
        return self._payload


class _RoutedSession:
    """Answers by URL suffix; exceptions are raised instead of returned."""

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.calls: List[str] = []

    def get(self, url: str, params=None, timeout=None):
        self.calls.append(url)
        for suffix, answer in self.routes.items():
            if url.endswith(suffix):
                if isinstance(answer, Exception):
                    raise answer
                return answer
        raise requests.ConnectionError(f"no route for {url}")


class _FallbackService:
    def __init__(self, positions) -> None:
        self.positions = positions
        self.calls: List[tuple] = []

    def resolve_raw(self, device_id, start=None, end=None, limit=None):
        self.calls.append((device_id, start, end, limit))
        return list(self.positions)


def test_unconfigured_service_falls_back_without_network() -> None:
    session = _RoutedSession({})
    fallback = _FallbackService(meridian_track(6))
    client = OptimizationServiceClient(fallback, "", session=session)

    result = client.get_optimized_positions(7)

    assert session.calls == []
    assert client.is_available() is False
    assert len(result["positions"]) == 6
    assert result["optimization"]["reductionPercentage"] == 0.0
    assert fallback.calls == [(7, None, None, None)]


def test_healthy_service_answers_directly() -> None:
    remote = {"positions": [], "optimization": {"reductionPercentage": 42.0}}
    session = _RoutedSession(
        {
            "/health": _Response(200, {"status": "healthy"}),
            "/api/positions": _Response(200, remote),
        }
    )
    fallback = _FallbackService([])
    client = OptimizationServiceClient(fallback, "http://opt.test/", session=session)

    assert client.get_optimized_positions(7) == remote
    assert session.calls == ["http://opt.test/health", "http://opt.test/api/positions"]
    assert fallback.calls == []


def test_unreachable_service_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    session = _RoutedSession({"/health": requests.ConnectionError("refused")})
    fallback = _FallbackService(meridian_track(3))
    client = OptimizationServiceClient(fallback, "http://opt.test", session=session)
    end = T0 + timedelta(hours=1)

    with caplog.at_level(logging.WARNING):
        result = client.get_optimized_history(7, T0, end, limit=50)

    assert "Optimization service not available" in caplog.text
    assert fallback.calls == [(7, T0, end, 50)]
    assert result["optimization"]["originalCount"] == 3


def test_failing_service_call_falls_back(caplog: pytest.LogCaptureFixture) -> None:
    session = _RoutedSession(
        {"/health": _Response(200), "/api/positions": _Response(503)}
    )
    fallback = _FallbackService(meridian_track(2))
    client = OptimizationServiceClient(fallback, "http://opt.test", session=session)

    with caplog.at_level(logging.WARNING):
        result = client.get_optimized_positions(7)

    assert "answered 503" in caplog.text
    assert len(result["positions"]) == 2


def test_stats_fallback_returns_zeroed_payload() -> None:
    client = OptimizationServiceClient(
        _FallbackService([]), "", session=_RoutedSession({})
    )
    stats = client.get_optimization_stats(7, days=3)
    assert stats["deviceId"] == 7
    assert stats["totalPositions"] == 0
    assert stats["optimizationPotential"]["withTolerance25"] == 0
    assert stats["recommendations"]["recommendedTolerance"] == 10


def test_options_render_as_query_parameters() -> None:
    options = OptimizationOptions(tolerance=12.5, preserve_stops=False)
    params = options_to_params(options)
    assert params["tolerance"] == "12.5"
    assert params["minTimeInterval"] == "30000"
    assert params["preserveStops"] == "false"
    assert params["enableSpeedFilter"] == "true"
