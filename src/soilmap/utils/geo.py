"""Geographic types and polygon geometry kernel.

Rings are sequences of ``(lon, lat)`` vertices in GeoJSON order, closed
(first vertex repeated at the end). Everything here fails soft: degenerate
input yields ``False``, the default box, or the ring unchanged, never an
exception.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

Coordinate = tuple[float, float]
Ring = Sequence[Sequence[float]]

# Decimal places used to normalize lattice coordinates (~110 m)
GRID_PRECISION = 3


@dataclass
class BoundingBox:
    """Geographic bounding box."""

    west: float
    south: float
    east: float
    north: float

    def contains(self, lat: float, lon: float) -> bool:
        """Check if a point is within this bounding box."""
        return (
            self.south <= lat <= self.north
            and self.west <= lon <= self.east
        )

    @property
    def width(self) -> float:
        return self.east - self.west

    @property
    def height(self) -> float:
        return self.north - self.south

    def to_dict(self) -> dict:
        """Return as dictionary."""
        return {
            "west": self.west,
            "south": self.south,
            "east": self.east,
            "north": self.north,
        }


@dataclass(frozen=True)
class GridPoint:
    """Candidate sample location, rounded to ``GRID_PRECISION`` decimals."""

    lat: float
    lon: float

    @classmethod
    def rounded(cls, lat: float, lon: float) -> "GridPoint":
        return cls(round(lat, GRID_PRECISION), round(lon, GRID_PRECISION))


@dataclass
class BoundaryPolygon:
    """A named region described by its outer ring.

    Attributes:
        name: Region name (e.g. "North Kazakhstan Region")
        ring: Closed ring of (lon, lat) vertices
        properties: Free-form metadata carried over from the source
    """

    name: str
    ring: list[Coordinate]
    properties: dict[str, Any] = field(default_factory=dict)

    @property
    def bbox(self) -> BoundingBox:
        return get_bounding_box(self.ring)

    def contains(self, lat: float, lon: float) -> bool:
        """Check if a point is inside the region."""
        return is_point_in_polygon((lon, lat), self.ring)

    def to_feature(self) -> dict:
        """Return the region as a GeoJSON Feature mapping."""
        return {
            "type": "Feature",
            "properties": {"name": self.name, **self.properties},
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(coord) for coord in self.ring]],
            },
        }


@dataclass
class BoundaryCollection:
    """Several regions treated as one combined area."""

    regions: list[BoundaryPolygon] = field(default_factory=list)

    def names(self) -> list[str]:
        return [region.name for region in self.regions]

    def get(self, name: str) -> BoundaryPolygon | None:
        for region in self.regions:
            if region.name == name:
                return region
        return None


# Fail-soft box returned for empty rings (North Kazakhstan Region extent)
DEFAULT_BBOX = BoundingBox(
    west=66.0,
    south=51.8,
    east=72.0,
    north=55.2,
)


def is_point_in_polygon(point: Sequence[float], ring: Ring) -> bool:
    """Check if a point is inside a ring using ray casting.

    A horizontal ray is cast from the point towards +infinity longitude and
    edge crossings are counted with the even-odd rule. The straddle test is
    asymmetric (one endpoint strictly above, the other at or below) so a
    vertex lying exactly on the ray is counted once.

    Args:
        point: (lon, lat) of the test point
        ring: Sequence of (lon, lat) vertices

    Returns:
        True if the point is inside, False otherwise or for rings with
        fewer than 3 vertices
    """
    if not ring or len(ring) < 3:
        return False

    lon, lat = point[0], point[1]
    inside = False

    j = len(ring) - 1
    for i in range(len(ring)):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]

        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lon < x_cross:
                inside = not inside

        j = i

    return inside


def _feature_ring(feature: Mapping) -> Ring | None:
    geometry = feature.get("geometry") or {}
    coordinates = geometry.get("coordinates")
    if not coordinates:
        return None
    if geometry.get("type") == "MultiPolygon":
        # First polygon's outer ring
        return coordinates[0][0] if coordinates[0] else None
    return coordinates[0]


def feature_rings(boundaries: Mapping) -> list[Ring]:
    """Outer rings of a GeoJSON Feature or FeatureCollection mapping.

    MultiPolygon features contribute their first polygon's outer ring.
    Features without usable coordinates are skipped.
    """
    if boundaries.get("type") == "FeatureCollection":
        features = boundaries.get("features") or []
    else:
        features = [boundaries]

    rings = []
    for feature in features:
        if not isinstance(feature, Mapping):
            continue
        ring = _feature_ring(feature)
        if ring is not None:
            rings.append(ring)
    return rings


def is_point_in_any_polygon(point: Sequence[float], boundaries: Any) -> bool:
    """Check if a point is inside any region of a boundary.

    Accepts a BoundaryPolygon, a BoundaryCollection, a GeoJSON Feature or
    FeatureCollection mapping, or a bare ring. Stops at the first region
    that contains the point.

    Args:
        point: (lon, lat) of the test point
        boundaries: Single region or collection of regions

    Returns:
        True if any region contains the point
    """
    if boundaries is None:
        return False

    if isinstance(boundaries, BoundaryPolygon):
        return is_point_in_polygon(point, boundaries.ring)

    if isinstance(boundaries, BoundaryCollection):
        return any(
            is_point_in_polygon(point, region.ring) for region in boundaries.regions
        )

    if isinstance(boundaries, Mapping):
        return any(
            is_point_in_polygon(point, ring) for ring in feature_rings(boundaries)
        )

    if isinstance(boundaries, Sequence) and not isinstance(boundaries, str):
        return is_point_in_polygon(point, boundaries)

    return False


def get_bounding_box(ring: Ring) -> BoundingBox:
    """Get the bounding box of a ring.

    Args:
        ring: Sequence of (lon, lat) vertices

    Returns:
        BoundingBox of the ring, or DEFAULT_BBOX if the ring is empty
    """
    if not ring:
        return BoundingBox(**DEFAULT_BBOX.to_dict())

    lons = [coord[0] for coord in ring]
    lats = [coord[1] for coord in ring]

    return BoundingBox(
        west=min(lons),
        south=min(lats),
        east=max(lons),
        north=max(lats),
    )


def polygon_area(ring: Ring) -> float:
    """Calculate ring area in square degrees (shoelace formula)."""
    if not ring or len(ring) < 3:
        return 0.0

    area = 0.0
    for i in range(len(ring) - 1):
        x1, y1 = ring[i][0], ring[i][1]
        x2, y2 = ring[i + 1][0], ring[i + 1][1]
        area += x1 * y2 - x2 * y1

    return abs(area) / 2


def _distance_to_segment(
    point: Sequence[float], start: Sequence[float], end: Sequence[float]
) -> float:
    px, py = point[0], point[1]
    sx, sy = start[0], start[1]
    ex, ey = end[0], end[1]

    dx = ex - sx
    dy = ey - sy
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        return math.hypot(px - sx, py - sy)

    t = ((px - sx) * dx + (py - sy) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    return math.hypot(px - (sx + t * dx), py - (sy + t * dy))


def _douglas_peucker(points: list, tolerance: float) -> list:
    if len(points) <= 2:
        return points

    max_dist = 0.0
    max_index = 0
    for i in range(1, len(points) - 1):
        dist = _distance_to_segment(points[i], points[0], points[-1])
        if dist > max_dist:
            max_dist = dist
            max_index = i

    if max_dist > tolerance:
        left = _douglas_peucker(points[: max_index + 1], tolerance)
        right = _douglas_peucker(points[max_index:], tolerance)
        # Shared vertex appears at the end of left and the start of right
        return left[:-1] + right

    return [points[0], points[-1]]


def simplify_polygon(ring: Ring, tolerance: float = 0.01) -> list:
    """Simplify a ring with the Douglas-Peucker algorithm.

    A vertex survives only if its distance to the current chord is strictly
    greater than ``tolerance``. With ``tolerance=0`` every vertex that deviates
    at all is kept; exactly collinear vertices are dropped.

    Args:
        ring: Sequence of (lon, lat) vertices
        tolerance: Maximum deviation in degrees

    Returns:
        Simplified list of vertices (input returned as a list if < 3 vertices)
    """
    if not ring or len(ring) < 3:
        return list(ring) if ring else []

    return _douglas_peucker([tuple(coord) for coord in ring], tolerance)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def validate_polygon(ring: Ring | None) -> bool:
    """Structural sanity check of a ring.

    Requires at least 4 vertices, each a numeric (lon, lat) pair within
    [-180, 180] x [-90, 90]. A ring that is not closed is logged as a warning
    but still accepted.

    Args:
        ring: Sequence of (lon, lat) vertices

    Returns:
        True if the ring is usable
    """
    if not ring or isinstance(ring, (str, bytes)) or len(ring) < 4:
        return False

    for coord in ring:
        if not isinstance(coord, Sequence) or len(coord) < 2:
            return False
        lon, lat = coord[0], coord[1]
        if not _is_number(lon) or not _is_number(lat):
            return False
        if lon < -180 or lon > 180 or lat < -90 or lat > 90:
            return False

    first, last = ring[0], ring[-1]
    if first[0] != last[0] or first[1] != last[1]:
        logger.warning("Polygon is not properly closed")

    return True


def close_ring(ring: Iterable[Sequence[float]]) -> list[Coordinate]:
    """Return the ring as (lon, lat) tuples with the first vertex repeated at the end."""
    coords = [(float(c[0]), float(c[1])) for c in ring]
    if coords and coords[0] != coords[-1]:
        coords.append(coords[0])
    return coords
