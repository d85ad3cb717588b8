"""Spatial core: sample grid generation and IDW interpolation."""

from soilmap.spatial.grid import (
    CURRENT_GRID_STEP,
    FALLBACK_BBOX,
    FORECAST_GRID_STEP,
    generate_bbox_grid,
    generate_grid,
    grid_to_dataframe,
)
from soilmap.spatial.idw import (
    EXACT_MATCH_EPSILON,
    idw_interpolate,
    nearest_sample_distance,
)

__all__ = [
    "CURRENT_GRID_STEP",
    "FORECAST_GRID_STEP",
    "FALLBACK_BBOX",
    "EXACT_MATCH_EPSILON",
    "generate_grid",
    "generate_bbox_grid",
    "grid_to_dataframe",
    "idw_interpolate",
    "nearest_sample_distance",
]
