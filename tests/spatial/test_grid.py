"""Tests for sample grid generation."""

import logging

import pytest

from soilmap.spatial.grid import (
    FALLBACK_BBOX,
    generate_bbox_grid,
    generate_grid,
    grid_to_dataframe,
)
from soilmap.utils.geo import BoundaryCollection, BoundaryPolygon, BoundingBox, GridPoint


class TestGenerateGrid:
    """Tests for generate_grid."""

    def test_unit_square_half_step(self, square_boundary):
        """Should keep lattice points inside the square in row-major order."""
        grid = generate_grid(0.5, square_boundary)
        assert grid == [
            GridPoint(0.0, 0.0),
            GridPoint(0.0, 0.5),
            GridPoint(0.5, 0.0),
            GridPoint(0.5, 0.5),
        ]

    def test_all_points_inside_region(self, region_boundary):
        """Every generated point should pass the containment test."""
        grid = generate_grid(0.3, region_boundary)
        assert len(grid) > 50
        for point in grid:
            assert region_boundary.contains(point.lat, point.lon)

    def test_finer_step_gives_more_points(self, region_boundary):
        assert len(generate_grid(0.2, region_boundary)) > len(generate_grid(0.3, region_boundary))

    def test_points_rounded(self, region_boundary):
        """Coordinates should carry at most 3 decimals."""
        for point in generate_grid(0.3, region_boundary):
            assert point.lat == round(point.lat, 3)
            assert point.lon == round(point.lon, 3)

    def test_deterministic(self, region_boundary):
        assert generate_grid(0.3, region_boundary) == generate_grid(0.3, region_boundary)

    def test_row_major_order(self, region_boundary):
        """Latitude should be non-decreasing, longitude increasing within a row."""
        grid = generate_grid(0.3, region_boundary)
        for prev, cur in zip(grid, grid[1:]):
            assert prev.lat <= cur.lat
            if prev.lat == cur.lat:
                assert prev.lon < cur.lon

    def test_collection(self, unit_square):
        shifted = [(x + 2, y) for x, y in unit_square]
        collection = BoundaryCollection([
            BoundaryPolygon("a", unit_square),
            BoundaryPolygon("b", shifted),
        ])
        grid = generate_grid(0.5, collection)
        assert GridPoint(0.5, 0.5) in grid
        assert GridPoint(0.5, 2.5) in grid
        assert GridPoint(0.5, 1.5) not in grid

    def test_geojson_feature(self, square_boundary):
        assert generate_grid(0.5, square_boundary.to_feature()) == generate_grid(0.5, square_boundary)

    def test_geojson_feature_collection(self, square_boundary):
        """The lattice spans the features' extent, not the default box."""
        collection = {"type": "FeatureCollection", "features": [square_boundary.to_feature()]}
        assert generate_grid(0.5, collection) == generate_grid(0.5, square_boundary)

    def test_geojson_feature_collection_union(self, unit_square):
        shifted = [[x + 2, y] for x, y in unit_square]
        collection = {
            "type": "FeatureCollection",
            "features": [
                BoundaryPolygon("a", unit_square).to_feature(),
                {"type": "Feature", "properties": {}, "geometry": {"type": "Polygon", "coordinates": [shifted]}},
            ],
        }
        grid = generate_grid(0.5, collection)
        assert GridPoint(0.5, 0.5) in grid
        assert GridPoint(0.5, 2.5) in grid
        assert GridPoint(0.5, 1.5) not in grid

    def test_geojson_multipolygon_feature(self, unit_square, square_boundary):
        feature = {
            "type": "Feature",
            "properties": {},
            "geometry": {"type": "MultiPolygon", "coordinates": [[[list(c) for c in unit_square]]]},
        }
        assert generate_grid(0.5, feature) == generate_grid(0.5, square_boundary)

    def test_no_boundary_returns_fallback_rectangle(self, caplog):
        """Missing boundary should fall back to the unfiltered rectangle."""
        with caplog.at_level(logging.WARNING, logger="soilmap.spatial.grid"):
            grid = generate_grid(0.3, None)

        assert len(grid) == 12 * 21
        assert grid[0] == GridPoint(FALLBACK_BBOX.south, FALLBACK_BBOX.west)
        for point in grid:
            assert FALLBACK_BBOX.contains(point.lat, point.lon)
        assert "fallback" in caplog.text

    @pytest.mark.parametrize("step", [0, -0.1])
    def test_non_positive_step_rejected(self, step, square_boundary):
        with pytest.raises(ValueError, match="positive"):
            generate_grid(step, square_boundary)
        with pytest.raises(ValueError, match="positive"):
            generate_grid(step, None)


class TestGenerateBboxGrid:
    """Tests for the unfiltered lattice."""

    def test_no_float_drift(self):
        """Index-based axes should include the far edge exactly once."""
        grid = generate_bbox_grid(BoundingBox(west=0, south=0, east=1, north=1), 0.1)
        assert len(grid) == 121
        assert grid[-1] == GridPoint(1.0, 1.0)
        assert len(set(grid)) == 121

    def test_step_larger_than_box(self):
        grid = generate_bbox_grid(BoundingBox(west=0, south=0, east=1, north=1), 5)
        assert grid == [GridPoint(0, 0)]


class TestGridToDataframe:
    """Tests for grid export."""

    def test_columns(self, square_boundary):
        df = grid_to_dataframe(generate_grid(0.5, square_boundary))
        assert list(df.columns) == ["lat", "lon"]
        assert len(df) == 4

    def test_empty(self):
        df = grid_to_dataframe([])
        assert df.empty
