"""Central configuration for the route optimizer service.

All values are constants imported by the rest of the package. Adjust as needed
for your environment. Secrets are read from environment variables (optionally
via a local `.env`).
"""

from __future__ import annotations

import importlib
import os


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


# Load .env variables when python-dotenv is available.
_load_dotenv = None
try:
    _dotenv_mod = importlib.import_module("dotenv")
    _load_dotenv = getattr(_dotenv_mod, "load_dotenv", None)
except Exception:
    _load_dotenv = None

if callable(_load_dotenv):
    # Load .env from the current directory or any parent folder.
    _load_dotenv()


# ---------------------------------------------------------------------------
# Tracking platform (Traccar-compatible API)
# ---------------------------------------------------------------------------
TRACCAR_URL = os.getenv("TRACCAR_URL", "http://localhost:8082").rstrip("/")

# Credentials pulled from the environment. Do not hardcode secrets.
# TRACCAR_AUTH takes a pre-encoded basic token and wins over user/password.
TRACCAR_USER = os.getenv("TRACCAR_USER", "")
TRACCAR_PASSWORD = os.getenv("TRACCAR_PASSWORD", "")
TRACCAR_AUTH = os.getenv("TRACCAR_AUTH", "")

# Unit of the ``speed`` field reported upstream: "kmh" or "knots".
UPSTREAM_SPEED_UNIT = os.getenv("UPSTREAM_SPEED_UNIT", "kmh").strip().lower()


# ---------------------------------------------------------------------------
# Optimization microservice (used by the client-side mirror)
# ---------------------------------------------------------------------------
# Leave empty to always talk to the tracking platform directly.
OPTIMIZATION_SERVICE_URL = os.getenv("OPTIMIZATION_SERVICE_URL", "").rstrip("/")


# ---------------------------------------------------------------------------
# HTTP behaviour
# ---------------------------------------------------------------------------
# Request timeout in seconds for upstream calls.
REQUEST_TIMEOUT = _env_float("REQUEST_TIMEOUT", 15.0)

# Timeout in seconds for the optimization service liveness probe.
HEALTH_CHECK_TIMEOUT = _env_float("HEALTH_CHECK_TIMEOUT", 5.0)

# HTTP session pool sizes for concurrent requests.
HTTP_POOL_CONNECTIONS = 20
HTTP_POOL_MAXSIZE = 20

# urllib3 retries for transient 5xx answers before a fetch strategy gives up.
HTTP_MAX_RETRIES = _env_int("HTTP_MAX_RETRIES", 2)
HTTP_BACKOFF_FACTOR = _env_float("HTTP_BACKOFF_FACTOR", 0.5)


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------
# Time-to-live (seconds) for cached position responses. Absorbs UI polling.
CACHE_TTL_SECONDS = _env_int("CACHE_TTL_SECONDS", 300)

# Maximum number of cached responses kept in memory.
CACHE_MAX_ENTRIES = _env_int("CACHE_MAX_ENTRIES", 512)

# Width (metres) of the tolerance buckets used in cache keys.
TOLERANCE_BUCKET_M = _env_float("TOLERANCE_BUCKET_M", 1.0)


# ---------------------------------------------------------------------------
# Query defaults
# ---------------------------------------------------------------------------
DEFAULT_POSITION_LIMIT = _env_int("DEFAULT_POSITION_LIMIT", 1000)

# Raw window size used when estimating optimization potential.
STATS_POSITION_LIMIT = _env_int("STATS_POSITION_LIMIT", 10000)
STATS_DEFAULT_DAYS = _env_int("STATS_DEFAULT_DAYS", 7)

# Tolerances (metres) trial-run by the optimization stats endpoint.
STATS_TRIAL_TOLERANCES = (10.0, 25.0, 50.0)


# ---------------------------------------------------------------------------
# HTTP service
# ---------------------------------------------------------------------------
SERVER_HOST = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT = _env_int("PORT", 3001)

# Origin allowed to call the API from a browser.
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5174")

SERVICE_NAME = "route-optimizer"
SERVICE_VERSION = "1.0.0"
