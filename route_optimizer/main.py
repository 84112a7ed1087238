"""Command line entry point: run the API, or optimize/fetch trajectories."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from werkzeug.serving import make_server

from .config import SERVER_HOST, SERVER_PORT
from .models import OptimizationOptions
from .optimization import get_preset, optimize_coordinates, preset_names
from .parsing import parse_datetime, parse_options, parse_positions
from .server import create_app
from .services import OptimizationServiceClient, PositionService


def _setup_logging(verbose: bool = False) -> None:
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        )


def _add_tuning_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--preset", choices=preset_names())
    parser.add_argument("--tolerance", help="Simplification tolerance (metres)")
    parser.add_argument("--min-speed", help="Stop threshold (km/h)")
    parser.add_argument("--max-speed", help="Plausibility ceiling (km/h)")
    parser.add_argument("--min-accuracy", help="Accuracy ceiling (metres)")
    parser.add_argument("--min-time-interval", help="Minimum spacing (ms)")
    parser.add_argument("--preserve-stops", help="true/false")
    parser.add_argument("--preserve-speed-changes", help="true/false")


def _options_from_args(args: argparse.Namespace) -> OptimizationOptions:
    base = get_preset(args.preset) if args.preset else None
    params = {
        "tolerance": args.tolerance,
        "minSpeed": args.min_speed,
        "maxSpeed": args.max_speed,
        "minAccuracy": args.min_accuracy,
        "minTimeInterval": args.min_time_interval,
        "preserveStops": args.preserve_stops,
        "preserveSpeedChanges": args.preserve_speed_changes,
    }
    return parse_options({k: v for k, v in params.items() if v is not None}, base)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="route-optimizer",
        description="GPS trajectory optimization service and tools.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default=SERVER_HOST)
    serve.add_argument("--port", type=int, default=SERVER_PORT)

    optimize = commands.add_parser(
        "optimize", help="Optimize a JSON file of raw positions offline"
    )
    optimize.add_argument("input", type=Path)
    optimize.add_argument("-o", "--output", type=Path)
    _add_tuning_arguments(optimize)

    fetch = commands.add_parser(
        "fetch", help="Fetch positions through the optimization service"
    )
    fetch.add_argument("--device-id", type=int, required=True)
    fetch.add_argument("--from", dest="start")
    fetch.add_argument("--to", dest="end")
    fetch.add_argument("-o", "--output", type=Path)
    _add_tuning_arguments(fetch)
    return parser


def _load_raw_positions(path: Path) -> List[Any]:
    payload = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("positions", [])
    return payload if isinstance(payload, list) else []


def _emit(result: Dict[str, Any], output: Optional[Path]) -> None:
    text = json.dumps(result, indent=2)
    if output is None:
        print(text)
        return
    output.write_text(text, encoding="utf-8")
    logging.info("Wrote %s", output)


def _run_serve(args: argparse.Namespace) -> int:
    app = create_app()
    server = make_server(args.host, args.port, app, threaded=True)
    logging.info("Route optimizer listening on http://%s:%s", args.host, args.port)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logging.info("Shutting down")
    finally:
        server.server_close()
    return 0


def _run_optimize(args: argparse.Namespace) -> int:
    raw = _load_raw_positions(args.input)
    positions = parse_positions(raw)
    logging.info("Loaded %d positions from %s", len(positions), args.input)
    result = optimize_coordinates(positions, _options_from_args(args))
    _emit(
        {
            "positions": [pos.to_dict() for pos in result.optimized_positions],
            "optimization": result.to_dict(),
        },
        args.output,
    )
    return 0


def _run_fetch(args: argparse.Namespace) -> int:
    start = parse_datetime(args.start)
    end = parse_datetime(args.end)
    options = _options_from_args(args)
    client = OptimizationServiceClient(PositionService())
    if start is not None and end is not None:
        result = client.get_optimized_history(args.device_id, start, end, options)
    else:
        result = client.get_optimized_positions(args.device_id, options)
    optimization = result.get("optimization", {})
    logging.info(
        "Device %s: %s -> %s positions (%s%% reduction)",
        args.device_id,
        optimization.get("originalCount"),
        optimization.get("optimizedCount"),
        optimization.get("reductionPercentage"),
    )
    _emit(result, args.output)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _setup_logging(args.verbose)
    handlers = {
        "serve": _run_serve,
        "optimize": _run_optimize,
        "fetch": _run_fetch,
    }
    return handlers[args.command](args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
