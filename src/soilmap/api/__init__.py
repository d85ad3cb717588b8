"""HTTP API for soilmap.

This module provides:

- create_app: Factory function to create FastAPI application
- SoilDataService: Boundary + grid + fetch + cache glue used by the routes
- SoilDataResponse: Response schema for /soil-data

Note: FastAPI-dependent exports (create_app, get_service) are lazy-loaded
to allow importing schemas without FastAPI installed.
"""

# Schemas can be imported directly (only depend on pydantic)
from soilmap.api.schemas import (
    BoundaryResponse,
    ErrorResponse,
    ForecastInfo,
    HealthResponse,
    LegendResponse,
    PointForecastResponse,
    SoilDataPoint,
    SoilDataResponse,
)


# Lazy imports for FastAPI-dependent components
def __getattr__(name):
    """Lazy load FastAPI-dependent components."""
    if name in ("create_app", "get_service"):
        from soilmap.api.app import create_app, get_service
        if name == "create_app":
            return create_app
        elif name == "get_service":
            return get_service
    if name == "SoilDataService":
        from soilmap.api.service import SoilDataService
        return SoilDataService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "create_app",
    "get_service",
    "SoilDataService",
    "SoilDataPoint",
    "SoilDataResponse",
    "ForecastInfo",
    "BoundaryResponse",
    "LegendResponse",
    "PointForecastResponse",
    "HealthResponse",
    "ErrorResponse",
]
