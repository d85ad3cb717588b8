"""Sample models and the in-memory TTL cache."""

from soilmap.cache.models import (
    LAYERS,
    CacheEntry,
    ForecastDay,
    ForecastResult,
    SamplePoint,
)
from soilmap.cache.samples import (
    CURRENT_TTL_SECONDS,
    FORECAST_TTL_SECONDS,
    SampleCache,
)

__all__ = [
    "LAYERS",
    "CacheEntry",
    "ForecastDay",
    "ForecastResult",
    "SamplePoint",
    "SampleCache",
    "CURRENT_TTL_SECONDS",
    "FORECAST_TTL_SECONDS",
]
