"""Administrative boundary pipeline.

Loads the region outline used to clip the sample grid and the overlay. The
boundary comes from a local GeoJSON file, a remote GeoJSON URL (e.g. a
geoBoundaries ADM1 export), or the built-in approximate outline of the North
Kazakhstan Region. Features are matched on ``properties.shapeName`` (the
geoBoundaries convention) or ``properties.name``.

Example:
    >>> pipeline = BoundaryPipeline(path="data/raw/boundaries/kaz_adm1.geojson")
    >>> region = pipeline.load()
    >>> region.contains(54.5, 69.2)
    True
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional

import geojson
import requests
from shapely.errors import ShapelyError
from shapely.geometry import shape

from soilmap.utils import (
    BoundaryCollection,
    BoundaryPolygon,
    StaticPipeline,
    ValidationResult,
    polygon_area,
    validate_polygon,
)
from soilmap.utils.geo import close_ring
from soilmap.utils.io import get_data_path

logger = logging.getLogger(__name__)

DEFAULT_REGION = "North Kazakhstan Region"

# Request timeout in seconds
REQUEST_TIMEOUT = 30

# Approximate outline used when no GeoJSON source is configured
BUILTIN_RING = [
    (66.5, 55.0), (67.8, 55.2), (69.2, 55.1), (70.5, 54.9), (71.8, 54.5),
    (72.0, 54.0), (71.8, 53.2), (71.3, 52.5), (70.5, 52.0), (69.2, 51.8),
    (67.8, 51.9), (66.8, 52.2), (66.2, 52.8), (66.0, 53.5), (66.1, 54.2),
    (66.3, 54.7), (66.5, 55.0),
]

# Rectangle served when every source fails
FALLBACK_BOUNDARY = BoundaryPolygon(
    name=DEFAULT_REGION,
    ring=[(68.0, 55.5), (73.0, 55.5), (73.0, 53.0), (68.0, 53.0), (68.0, 55.5)],
    properties={"fallback": True},
)

# Name properties checked in order
NAME_KEYS = ("shapeName", "name", "NAME_1")


class BoundaryNotFoundError(Exception):
    """Raised when the requested region is not in the boundary source."""


# Malformed geometries surface as shapely or structure errors
FEATURE_ERRORS = (ValueError, KeyError, TypeError, IndexError, AttributeError, ShapelyError)

# Everything load() turns into the fallback rectangle
LOAD_ERRORS = (BoundaryNotFoundError, OSError, requests.RequestException) + FEATURE_ERRORS


def feature_name(properties: Optional[dict]) -> Optional[str]:
    """Get the region name from GeoJSON feature properties."""
    for key in NAME_KEYS:
        value = (properties or {}).get(key)
        if value:
            return str(value)
    return None


def feature_to_boundary(feature: dict, name: Optional[str] = None) -> BoundaryPolygon:
    """Convert a Polygon/MultiPolygon feature to a BoundaryPolygon.

    MultiPolygons are reduced to the exterior of their largest part; holes
    are dropped.

    Raises:
        ValueError: If the geometry is missing or not polygonal
    """
    geometry = feature.get("geometry")
    if not geometry:
        raise ValueError("Feature has no geometry")

    shp = shape(geometry)
    if shp.geom_type == "MultiPolygon":
        shp = max(shp.geoms, key=lambda part: part.area)
    if shp.geom_type != "Polygon":
        raise ValueError(f"Unsupported geometry type: {shp.geom_type}")

    properties = dict(feature.get("properties") or {})
    ring = close_ring((x, y) for x, y, *_ in shp.exterior.coords)
    return BoundaryPolygon(
        name=name or feature_name(properties) or DEFAULT_REGION,
        ring=ring,
        properties=properties,
    )


class BoundaryPipeline(StaticPipeline):
    """Region boundary collaborator.

    Source precedence: ``path`` (local file), then ``url`` (downloaded into
    the raw data directory), then the built-in outline.

    Attributes:
        region: Region name to select from the source
        path: Local GeoJSON file
        url: Remote GeoJSON URL
    """

    def __init__(
        self,
        region: str = DEFAULT_REGION,
        path: str | Path | None = None,
        url: Optional[str] = None,
    ):
        self.region = region
        self.path = Path(path) if path else None
        self.url = url

    def download(self, **kwargs) -> Path:
        """Get the raw boundary GeoJSON.

        A configured local ``path`` is used as-is; otherwise the file is
        downloaded from ``url`` into the raw data directory.

        Returns:
            Path to the GeoJSON file

        Raises:
            ValueError: If neither a path nor a URL is configured
            requests.HTTPError: If download fails
        """
        url = kwargs.get("url", self.url)
        if self.path is not None and "url" not in kwargs:
            return self.path
        if not url:
            raise ValueError("No boundary URL configured")

        output_path = get_data_path("boundaries", "raw") / "boundary.geojson"

        response = requests.get(url, timeout=REQUEST_TIMEOUT)
        response.raise_for_status()

        with open(output_path, "w") as f:
            f.write(response.text)

        logger.info(f"Downloaded boundary from {url} to {output_path}")
        return output_path

    def _read_features(self, raw_path: Path) -> list[dict]:
        with open(raw_path) as f:
            data = geojson.load(f)

        if not isinstance(data, Mapping):
            raise ValueError(f"{raw_path} is not a GeoJSON object")
        if data.get("type") == "Feature":
            return [data]

        features = data.get("features")
        if not features:
            raise ValueError(f"{raw_path} has no features")
        return [feature for feature in features if isinstance(feature, Mapping)]

    def process(self, raw_path: Path) -> BoundaryPolygon:
        """Extract the configured region from a GeoJSON file.

        Raises:
            BoundaryNotFoundError: If no feature matches the region name
        """
        features = self._read_features(raw_path)

        for feature in features:
            if feature_name(feature.get("properties")) == self.region:
                boundary = feature_to_boundary(feature, self.region)
                logger.info(
                    f"Loaded boundary for {self.region} ({len(boundary.ring)} vertices)"
                )
                return boundary

        # A single unnamed feature is taken as the region itself
        if len(features) == 1 and feature_name(features[0].get("properties")) is None:
            return feature_to_boundary(features[0], self.region)

        raise BoundaryNotFoundError(f"{self.region} not found in {raw_path}")

    def has_source(self) -> bool:
        return self.path is not None or bool(self.url)

    def fetch(self) -> BoundaryPolygon:
        """Load the boundary from the configured source.

        The source is downloaded (if remote), parsed and validated through
        run(); a degenerate polygon is rejected.

        Raises:
            BoundaryNotFoundError: If the region is not in the source
            ValueError: If the source is malformed or the polygon is invalid
        """
        if not self.has_source():
            logger.info(f"No boundary source configured, using built-in outline for {self.region}")
            return BoundaryPolygon(name=self.region, ring=list(BUILTIN_RING))

        boundary, validation = self.run()
        for issue in validation.issues:
            logger.warning(f"Boundary {boundary.name}: {issue}")
        return boundary

    def load(self) -> BoundaryPolygon:
        """Load the boundary, falling back to a rectangle on any failure."""
        try:
            return self.fetch()
        except LOAD_ERRORS as e:
            logger.error(f"Error loading boundary: {e}. Using fallback rectangle")
            return FALLBACK_BOUNDARY

    def load_collection(self) -> BoundaryCollection:
        """Load every polygonal feature of the source as a collection."""
        if not self.has_source():
            return BoundaryCollection([BoundaryPolygon(name=self.region, ring=list(BUILTIN_RING))])

        source = self.download()
        regions = []
        for feature in self._read_features(source):
            try:
                regions.append(feature_to_boundary(feature))
            except FEATURE_ERRORS as e:
                logger.warning(f"Skipping feature {feature_name(feature.get('properties'))}: {e}")

        logger.info(f"Loaded {len(regions)} regions from {source}")
        return BoundaryCollection(regions)

    def validate(self, data: Any) -> ValidationResult:
        """Validate a boundary polygon.

        Args:
            data: BoundaryPolygon

        Returns:
            ValidationResult with vertex count and area stats
        """
        ring = data.ring if isinstance(data, BoundaryPolygon) else data
        issues = []

        structurally_valid = validate_polygon(ring)
        if not structurally_valid:
            issues.append("Invalid polygon ring")
        elif tuple(ring[0][:2]) != tuple(ring[-1][:2]):
            issues.append("Ring is not closed")

        area = polygon_area(ring) if structurally_valid else 0.0
        if area == 0:
            issues.append("Polygon has zero area")

        return ValidationResult(
            valid=structurally_valid and area > 0,
            total_rows=len(ring) if ring else 0,
            missing_pct=0.0,
            issues=issues,
            stats={
                "vertices": len(ring) if ring else 0,
                "area_sq_deg": area,
                "bbox": data.bbox.to_dict() if isinstance(data, BoundaryPolygon) else None,
            },
        )
