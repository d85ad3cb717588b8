"""Tests for SoilDataService."""

from unittest.mock import Mock

import pytest

from soilmap.api.service import ForecastSet, SoilDataService, is_forecast_request
from soilmap.cache import SampleCache, SamplePoint
from soilmap.pipelines import FALLBACK_BOUNDARY, BoundaryPipeline, OpenMeteoPipeline
from soilmap.visualization import Viewport


@pytest.fixture
def weather():
    client = Mock(spec=OpenMeteoPipeline)
    client.fetch_all_current.side_effect = lambda points, layer: [
        SamplePoint(lat=p.lat, lon=p.lon, value=25.0, timestamp="t") for p in points
    ]
    client.validate.side_effect = OpenMeteoPipeline().validate
    return client


class TestForecastMode:
    """Tests for is_forecast_request."""

    @pytest.mark.parametrize(
        "days,day,expected",
        [(1, 0, False), (7, 0, True), (2, 1, True), (1, 1, True)],
    )
    def test_mode(self, days, day, expected):
        assert is_forecast_request(days, day) is expected


class TestForecastSet:
    """Tests for ForecastSet."""

    def test_samples_for_day_skips_failures(self, forecast_result):
        forecast_set = ForecastSet(layer="moisture", days=3, results=[forecast_result, None])
        assert len(forecast_set.valid_results) == 1

        samples = forecast_set.samples_for_day(2)
        assert [s.value for s in samples] == [23.0]

    def test_day_past_series(self, forecast_result):
        forecast_set = ForecastSet(layer="moisture", days=5, results=[forecast_result])
        assert forecast_set.samples_for_day(4) == []


class TestSoilDataService:
    """Tests for boundary loading, caching and rendering."""

    def test_boundary_loaded_once(self, weather):
        pipeline = Mock(spec=BoundaryPipeline)
        pipeline.region = "Test"
        pipeline.load.return_value = FALLBACK_BOUNDARY
        service = SoilDataService(boundary_pipeline=pipeline, client=weather)

        assert service.boundary_loaded is False
        service.get_boundary()
        service.get_boundary()

        pipeline.load.assert_called_once()
        assert service.boundary_loaded is True

    def test_grid_clipped_to_boundary(self, weather, region_boundary):
        service = SoilDataService(client=weather)
        sample_set = service.current_samples("moisture")

        assert sample_set.total_points == len(sample_set.samples)
        assert all(region_boundary.contains(s.lat, s.lon) for s in sample_set.samples)

    def test_cache_key_per_region(self, weather):
        cache = SampleCache()
        SoilDataService(BoundaryPipeline(region="A"), weather, cache).current_samples("moisture")
        SoilDataService(BoundaryPipeline(region="B"), weather, cache).current_samples("moisture")
        assert weather.fetch_all_current.call_count == 2

    def test_render(self, weather, sample_bbox):
        service = SoilDataService(client=weather)
        viewport = Viewport(width=60, height=60, bounds=sample_bbox, zoom=7)

        overlay = service.render(viewport, "moisture")

        assert overlay is not None
        assert not overlay.is_empty
        assert overlay.layer == "moisture"

    def test_render_without_samples(self, weather, sample_bbox):
        weather.fetch_all_current.side_effect = lambda points, layer: []
        service = SoilDataService(client=weather)
        viewport = Viewport(width=60, height=60, bounds=sample_bbox, zoom=7)
        assert service.render(viewport, "moisture") is None
