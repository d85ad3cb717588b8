"""Shared pytest fixtures for soilmap tests.

Test Tiers:
- unit: Fast tests with fixtures, no network (default)
- integration: Tests that exercise several modules together
- live: Real Open-Meteo API tests, slow, requires network

Run live tests with: pytest -m live --run-live
"""

from datetime import datetime, timedelta
from pathlib import Path

import pytest

from soilmap.cache.models import ForecastDay, ForecastResult, SamplePoint
from soilmap.utils.geo import BoundaryPolygon, BoundingBox


def pytest_addoption(parser):
    """Add command line options for test configuration."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run live API tests (slow, requires network)",
    )


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: fast unit tests using fixtures")
    config.addinivalue_line("markers", "integration: tests that exercise several modules together")
    config.addinivalue_line("markers", "live: real API tests (slow, requires network)")


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is specified."""
    if config.getoption("--run-live"):
        # --run-live given: don't skip live tests
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture
def project_root() -> Path:
    """Get the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def tmp_data_dir(tmp_path, monkeypatch) -> Path:
    """Point the data directory at a temporary location."""
    data_dir = tmp_path / "data"
    monkeypatch.setenv("SOILMAP_DATA_DIR", str(data_dir))
    return data_dir


@pytest.fixture
def unit_square() -> list[tuple[float, float]]:
    """Closed unit square ring in (lon, lat) order."""
    return [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0), (0.0, 0.0)]


@pytest.fixture
def square_boundary(unit_square) -> BoundaryPolygon:
    """Unit square as a named region."""
    return BoundaryPolygon(name="square", ring=unit_square)


@pytest.fixture
def region_boundary() -> BoundaryPolygon:
    """Approximate North Kazakhstan outline."""
    from soilmap.pipelines.boundary import BUILTIN_RING

    return BoundaryPolygon(name="North Kazakhstan Region", ring=list(BUILTIN_RING))


@pytest.fixture
def sample_bbox() -> BoundingBox:
    """Small viewport bounding box over the region."""
    return BoundingBox(west=68.0, south=53.0, east=70.0, north=55.0)


@pytest.fixture
def sample_points() -> list[SamplePoint]:
    """A handful of moisture samples inside the region."""
    return [
        SamplePoint(lat=54.0, lon=69.0, value=20.0, timestamp="2026-05-14T12:00"),
        SamplePoint(lat=54.0, lon=69.4, value=30.0, timestamp="2026-05-14T12:00"),
        SamplePoint(lat=54.4, lon=69.0, value=40.0, timestamp="2026-05-14T12:00"),
        SamplePoint(lat=53.6, lon=68.6, value=25.0, timestamp="2026-05-14T12:00"),
    ]


@pytest.fixture
def forecast_result() -> ForecastResult:
    """Three-day forecast at one point."""
    return ForecastResult(
        lat=54.5,
        lon=69.2,
        days=[
            ForecastDay(date="2026-05-14", value=21.0, precipitation=0.0, time="2026-05-14T12:00"),
            ForecastDay(date="2026-05-15", value=24.5, precipitation=3.2, time="2026-05-15T12:00"),
            ForecastDay(date="2026-05-16", value=23.0, precipitation=0.05, time="2026-05-16T12:00"),
        ],
    )


@pytest.fixture
def hourly_response():
    """Factory for Open-Meteo style hourly payloads."""

    def build(
        parameter: str,
        hourly_values: list,
        start_date: str = "2026-05-14",
        precipitation: list | None = None,
    ) -> dict:
        start = datetime.fromisoformat(start_date)
        times = [
            (start + timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M")
            for i in range(len(hourly_values))
        ]
        hourly = {"time": times, parameter: hourly_values}
        if precipitation is not None:
            hourly["precipitation"] = precipitation
        return {"latitude": 54.5, "longitude": 69.2, "hourly": hourly}

    return build
