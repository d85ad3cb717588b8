"""Shared utilities for soilmap."""

from .base import BasePipeline, StaticPipeline, ValidationResult
from .geo import (
    DEFAULT_BBOX,
    BoundaryCollection,
    BoundaryPolygon,
    BoundingBox,
    GridPoint,
    get_bounding_box,
    is_point_in_any_polygon,
    is_point_in_polygon,
    polygon_area,
    simplify_polygon,
    validate_polygon,
)
from .io import get_data_path

__all__ = [
    "get_data_path",
    "BoundingBox",
    "BoundaryPolygon",
    "BoundaryCollection",
    "GridPoint",
    "DEFAULT_BBOX",
    "is_point_in_polygon",
    "is_point_in_any_polygon",
    "get_bounding_box",
    "polygon_area",
    "simplify_polygon",
    "validate_polygon",
    "BasePipeline",
    "StaticPipeline",
    "ValidationResult",
]
