"""Sample grid generation over an administrative boundary.

The grid is a plain lat/lon lattice over the boundary's bounding box,
filtered through the point-in-polygon test. Points are rounded to 3 decimals
so they are stable cache keys and request parameters.

Example:
    >>> from soilmap.utils.geo import BoundaryPolygon
    >>> square = BoundaryPolygon("square", [(0, 0), (1, 0), (1, 1), (0, 1), (0, 0)])
    >>> generate_grid(0.5, square)
    [GridPoint(lat=0.0, lon=0.0), GridPoint(lat=0.0, lon=0.5), GridPoint(lat=0.5, lon=0.0), GridPoint(lat=0.5, lon=0.5)]
"""

import logging
import math
from collections.abc import Mapping
from typing import Any

import pandas as pd

from soilmap.utils.geo import (
    DEFAULT_BBOX,
    BoundaryCollection,
    BoundaryPolygon,
    BoundingBox,
    GridPoint,
    feature_rings,
    get_bounding_box,
    is_point_in_any_polygon,
)

logger = logging.getLogger(__name__)

# Grid spacing in degrees for current conditions and forecasts
CURRENT_GRID_STEP = 0.2
FORECAST_GRID_STEP = 0.3

# Rectangle covered when no boundary is available
FALLBACK_BBOX = DEFAULT_BBOX

# Absorbs float error in (max - min) / step so the last row is not lost
_STEP_EPSILON = 1e-9


def _axis(start: float, stop: float, step: float) -> list[float]:
    count = int(math.floor((stop - start) / step + _STEP_EPSILON)) + 1
    return [start + i * step for i in range(max(count, 0))]


def _union_bbox(boxes: list[BoundingBox]) -> BoundingBox:
    if not boxes:
        return get_bounding_box([])
    return BoundingBox(
        west=min(b.west for b in boxes),
        south=min(b.south for b in boxes),
        east=max(b.east for b in boxes),
        north=max(b.north for b in boxes),
    )


def _boundary_bbox(boundary: Any) -> BoundingBox:
    if isinstance(boundary, BoundaryPolygon):
        return boundary.bbox

    if isinstance(boundary, BoundaryCollection):
        return _union_bbox([region.bbox for region in boundary.regions])

    # GeoJSON Feature / FeatureCollection: the rings the containment test uses
    if isinstance(boundary, Mapping):
        return _union_bbox([get_bounding_box(ring) for ring in feature_rings(boundary)])
    return get_bounding_box(boundary)


def generate_bbox_grid(bbox: BoundingBox, step: float) -> list[GridPoint]:
    """Generate every lattice point of a bounding box, unfiltered.

    Args:
        bbox: Area to cover
        step: Grid spacing in degrees

    Returns:
        Row-major list of GridPoints (latitude outer, longitude inner)
    """
    if step <= 0:
        raise ValueError(f"Grid step must be positive, got {step}")

    return [
        GridPoint.rounded(lat, lon)
        for lat in _axis(bbox.south, bbox.north, step)
        for lon in _axis(bbox.west, bbox.east, step)
    ]


def generate_grid(step: float = FORECAST_GRID_STEP, boundary: Any = None) -> list[GridPoint]:
    """Generate sample coordinates inside a boundary.

    Scans the boundary's bounding box at ``step`` increments (latitude outer
    loop, longitude inner loop) and keeps the lattice points inside the
    boundary. Without a boundary the whole FALLBACK_BBOX lattice is returned
    unfiltered so the map is never empty.

    Args:
        step: Grid spacing in degrees
        boundary: BoundaryPolygon, BoundaryCollection, GeoJSON Feature or ring

    Returns:
        Deterministic, row-major list of GridPoints

    Raises:
        ValueError: If step is not positive
    """
    if step <= 0:
        raise ValueError(f"Grid step must be positive, got {step}")

    if boundary is None:
        grid = generate_bbox_grid(FALLBACK_BBOX, step)
        logger.warning(
            f"No boundary available, using fallback rectangle grid "
            f"({len(grid)} points, step: {step}°)"
        )
        return grid

    bbox = _boundary_bbox(boundary)
    grid = []
    for lat in _axis(bbox.south, bbox.north, step):
        for lon in _axis(bbox.west, bbox.east, step):
            if is_point_in_any_polygon((lon, lat), boundary):
                grid.append(GridPoint.rounded(lat, lon))

    logger.info(f"Generated {len(grid)} grid points inside boundary (step: {step}°)")
    return grid


def grid_to_dataframe(points: list[GridPoint]) -> pd.DataFrame:
    """Convert grid points to a DataFrame with ``lat``/``lon`` columns."""
    return pd.DataFrame(
        {
            "lat": [p.lat for p in points],
            "lon": [p.lon for p in points],
        }
    )
