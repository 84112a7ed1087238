"""HTTP API serving optimized vehicle trajectories."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from flask import Flask, Response, abort, jsonify, request
from flask.typing import ResponseReturnValue
from werkzeug.exceptions import HTTPException

from .config import (
    DEFAULT_POSITION_LIMIT,
    FRONTEND_URL,
    SERVICE_NAME,
    SERVICE_VERSION,
    STATS_DEFAULT_DAYS,
)
from .errors import TrackingAPIError
from .models import OptimizationOptions
from .optimization import get_preset
from .parsing import (
    parse_bool,
    parse_datetime,
    parse_options,
    parse_positive_int,
    to_int,
)
from .services import PositionService

LOGGER = logging.getLogger(__name__)


def _device_id(value: Any) -> int:
    device_id = to_int(value)
    if device_id is None:
        abort(400, description="deviceId is required")
    return device_id


def _request_options(args: Mapping[str, Any]) -> OptimizationOptions:
    """Resolve tuning parameters, layered over an optional named preset."""

    base: Optional[OptimizationOptions] = None
    preset = args.get("preset")
    if preset:
        try:
            base = get_preset(preset)
        except KeyError:
            LOGGER.info("Unknown preset %r; using defaults", preset)
    return parse_options(args, base)


def create_app(service: Optional[PositionService] = None) -> Flask:
    """Build the Flask app around ``service`` (a default one when omitted)."""

    app = Flask(__name__)
    position_service = service or PositionService()
    app.extensions["position_service"] = position_service

    @app.after_request
    def _cors(response: Response) -> Response:
        response.headers.setdefault("Access-Control-Allow-Origin", FRONTEND_URL)
        response.headers.setdefault("Access-Control-Allow-Credentials", "true")
        return response

    @app.get("/health")
    def health() -> ResponseReturnValue:
        return jsonify(
            status="healthy",
            timestamp=datetime.now(timezone.utc).isoformat(),
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
        )

    @app.get("/api/devices")
    def devices() -> ResponseReturnValue:
        try:
            return jsonify(position_service.get_devices())
        except TrackingAPIError as exc:
            LOGGER.warning("Device list unavailable: %s", exc)
            return jsonify(error=str(exc)), 502

    @app.get("/api/positions")
    def positions() -> ResponseReturnValue:
        args = request.args
        device_id = _device_id(args.get("deviceId"))
        result = position_service.get_positions(
            device_id,
            parse_datetime(args.get("from")),
            parse_datetime(args.get("to")),
            limit=parse_positive_int(args.get("limit"), DEFAULT_POSITION_LIMIT),
            optimize=parse_bool(args.get("optimize"), True),
            options=_request_options(args),
        )
        return jsonify(result)

    @app.get("/api/history")
    def history() -> ResponseReturnValue:
        args = request.args
        device_id = to_int(args.get("deviceId"))
        start = parse_datetime(args.get("from"))
        end = parse_datetime(args.get("to"))
        if device_id is None or start is None or end is None:
            abort(400, description="deviceId, from, and to parameters are required")
        result = position_service.get_history(
            device_id,
            start,
            end,
            limit=parse_positive_int(args.get("limit"), DEFAULT_POSITION_LIMIT),
            options=_request_options(args),
        )
        return jsonify(result)

    @app.get("/api/optimization-stats/<device_id>")
    def optimization_stats(device_id: str) -> ResponseReturnValue:
        args = request.args
        stats = position_service.optimization_stats(
            _device_id(device_id),
            parse_datetime(args.get("from")),
            parse_datetime(args.get("to")),
            days=parse_positive_int(args.get("days"), STATS_DEFAULT_DAYS),
        )
        return jsonify(stats)

    @app.post("/api/cache/clear")
    def clear_cache() -> ResponseReturnValue:
        position_service.clear_cache()
        return jsonify(message="Cache cleared successfully")

    @app.errorhandler(HTTPException)
    def _http_error(exc: HTTPException) -> ResponseReturnValue:
        if exc.code == 404:
            return jsonify(error="Endpoint not found", path=request.path), 404
        return jsonify(error=exc.description), exc.code or 500

    @app.errorhandler(Exception)
    def _unhandled(exc: Exception) -> ResponseReturnValue:
        LOGGER.error("Unhandled error on %s: %s", request.path, exc, exc_info=True)
        return jsonify(error="Internal server error", message=str(exc)), 500

    return app
