"""Live smoke tests for the data pipelines.

These tests hit the real Open-Meteo API. They are slow and require network
access. Skip by default.

Run with: pytest tests/live/ -v --run-live
"""

import pytest

from soilmap.pipelines import BoundaryPipeline, OpenMeteoPipeline
from soilmap.spatial import generate_grid
from soilmap.utils import GridPoint

# All tests in this file are live tests
pytestmark = pytest.mark.live

PETROPAVL = GridPoint(54.87, 69.15)


class TestOpenMeteoLive:
    """Smoke tests for the Open-Meteo soil variables - no auth required."""

    def test_current_temperature(self):
        """Latest soil temperature should be a plausible °C value."""
        sample = OpenMeteoPipeline().fetch_current(PETROPAVL, "temperature")

        assert sample is not None, "Open-Meteo returned no soil temperature"
        assert -50 < sample.value < 60

    def test_current_moisture_is_percent(self):
        """Moisture should arrive as m³/m³ and be converted to percent."""
        sample = OpenMeteoPipeline().fetch_current(PETROPAVL, "moisture")

        assert sample is not None, "Open-Meteo returned no soil moisture"
        assert 0 <= sample.value <= 100

    def test_forecast_series(self):
        """A 3-day forecast should have one noon value per day."""
        result = OpenMeteoPipeline().fetch_forecast(PETROPAVL, "moisture", days=3)

        assert result is not None
        assert len(result.days) == 3
        assert len(set(result.dates)) == 3
        assert all(p >= 0 for p in result.precipitation)

    def test_small_batch(self):
        """A handful of grid points should mostly succeed."""
        grid = generate_grid(1.0, BoundaryPipeline().load())[:5]
        results = OpenMeteoPipeline().fetch_all_current(grid, "temperature")

        assert len(results) == len(grid)
        assert sum(r is not None for r in results) >= len(grid) - 1
