"""Data collaborators for soilmap.

Pipelines:
- openmeteo: Open-Meteo soil moisture / soil temperature client
- boundary: Administrative region outline (GeoJSON file, URL or built-in)
"""

from .boundary import (
    FALLBACK_BOUNDARY,
    BoundaryNotFoundError,
    BoundaryPipeline,
)
from .openmeteo import OpenMeteoPipeline

__all__ = [
    "OpenMeteoPipeline",
    "BoundaryPipeline",
    "BoundaryNotFoundError",
    "FALLBACK_BOUNDARY",
]
