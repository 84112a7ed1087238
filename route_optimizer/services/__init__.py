"""Service layer package.

Exports high-level services consumed by the HTTP API and the CLI.
"""

from .cache import ResultCache
from .optimization_client import OptimizationServiceClient
from .position_service import PositionService, PositionServiceConfig

__all__ = [
    "ResultCache",
    "OptimizationServiceClient",
    "PositionService",
    "PositionServiceConfig",
]
