"""Tests for IDW interpolation."""

import pytest

from soilmap.cache.models import SamplePoint
from soilmap.spatial.idw import (
    EXACT_MATCH_EPSILON,
    idw_interpolate,
    nearest_sample_distance,
)


def _sample(lat, lon, value):
    return SamplePoint(lat=lat, lon=lon, value=value, timestamp="")


class TestIdwInterpolate:
    """Tests for idw_interpolate."""

    def test_midpoint_of_two_samples(self):
        """Equidistant samples should average."""
        samples = [_sample(0, 0, 0.0), _sample(10, 0, 100.0)]
        assert idw_interpolate(5, 0, samples, power=2, max_distance=20) == 50.0

    def test_exact_match_returns_sample_value(self):
        samples = [_sample(54.0, 69.0, 20.0), _sample(54.5, 69.0, 80.0)]
        assert idw_interpolate(54.0, 69.0, samples) == 20.0
        assert idw_interpolate(54.0 + EXACT_MATCH_EPSILON / 2, 69.0, samples) == 20.0

    def test_nearer_sample_dominates(self):
        samples = [_sample(0, 0, 0.0), _sample(1, 0, 100.0)]
        value = idw_interpolate(0.9, 0, samples)
        assert value > 90

    def test_higher_power_sharpens(self):
        samples = [_sample(0, 0, 0.0), _sample(1, 0, 100.0)]
        assert idw_interpolate(0.7, 0, samples, power=4) > idw_interpolate(0.7, 0, samples, power=1)

    def test_samples_beyond_max_distance_ignored(self):
        samples = [_sample(0, 0, 10.0), _sample(5, 0, 1000.0)]
        assert idw_interpolate(0.5, 0, samples, max_distance=2) == pytest.approx(10.0)

    def test_no_sample_in_range(self):
        samples = [_sample(0, 0, 10.0)]
        assert idw_interpolate(10, 10, samples, max_distance=2) is None

    def test_empty_samples(self):
        assert idw_interpolate(54.0, 69.0, []) is None

    def test_result_within_sample_range(self, sample_points):
        """Estimate is a convex combination of sample values."""
        values = [s.value for s in sample_points]
        for lat, lon in [(54.1, 69.1), (53.8, 68.9), (54.3, 69.3)]:
            value = idw_interpolate(lat, lon, sample_points)
            assert min(values) <= value <= max(values)


class TestNearestSampleDistance:
    """Tests for nearest_sample_distance."""

    def test_distance(self):
        samples = [_sample(0, 0, 1.0), _sample(3, 4, 1.0)]
        assert nearest_sample_distance(3, 0, samples) == pytest.approx(3.0)
        assert nearest_sample_distance(3, 4, samples) == 0.0

    def test_no_samples(self):
        assert nearest_sample_distance(0, 0, []) is None
