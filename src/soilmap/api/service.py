"""Soil data service behind the HTTP API.

Glues the collaborators together: loads the region boundary once, builds the
sample grid inside it, fetches samples through the weather client and keeps
the results in a SampleCache keyed by region, layer and forecast window.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from soilmap.api.schemas import (
    ForecastDayModel,
    ForecastInfo,
    PrecipitationStats,
    SoilDataPoint,
    SoilDataResponse,
)
from soilmap.cache import (
    CURRENT_TTL_SECONDS,
    FORECAST_TTL_SECONDS,
    ForecastResult,
    SampleCache,
    SamplePoint,
)
from soilmap.pipelines import BoundaryPipeline, OpenMeteoPipeline
from soilmap.spatial import CURRENT_GRID_STEP, FORECAST_GRID_STEP, generate_grid
from soilmap.utils import BoundaryPolygon, GridPoint
from soilmap.visualization import Overlay, Viewport, render_overlay

logger = logging.getLogger(__name__)

# Daily precipitation above this counts as a rainy day (mm)
RAINY_DAY_THRESHOLD = 0.1

# Douglas-Peucker tolerance for detailed boundaries during server-side renders
RENDER_SIMPLIFY_TOLERANCE = 0.01


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def is_forecast_request(days: int, day: int) -> bool:
    """Forecast mode covers multi-day windows and any day after today."""
    return days > 1 or day > 0


@dataclass
class SampleSet:
    """Current-conditions samples for one layer."""

    layer: str
    samples: list[SamplePoint]
    total_points: int
    fetched_at: str = field(default_factory=_now_iso)


@dataclass
class ForecastSet:
    """Per-point forecasts for one layer and window (None = failed point)."""

    layer: str
    days: int
    results: list[Optional[ForecastResult]]
    fetched_at: str = field(default_factory=_now_iso)

    @property
    def valid_results(self) -> list[ForecastResult]:
        return [r for r in self.results if r is not None]

    def samples_for_day(self, day: int) -> list[SamplePoint]:
        samples = []
        for result in self.valid_results:
            sample = result.sample_for_day(day)
            if sample is not None:
                samples.append(sample)
        return samples


class SoilDataService:
    """Fetch, cache and render soil data for one region.

    Example:
        >>> service = SoilDataService()
        >>> response = service.soil_data("moisture", days=7, day=2)
        >>> overlay = service.render(viewport, "moisture")
    """

    def __init__(
        self,
        boundary_pipeline: Optional[BoundaryPipeline] = None,
        client: Optional[OpenMeteoPipeline] = None,
        cache: Optional[SampleCache] = None,
    ):
        self.boundary_pipeline = boundary_pipeline or BoundaryPipeline()
        self.client = client or OpenMeteoPipeline()
        self.cache = cache if cache is not None else SampleCache()
        self._boundary: Optional[BoundaryPolygon] = None
        self._boundary_lock = threading.Lock()

    @property
    def region(self) -> str:
        return self.boundary_pipeline.region

    @property
    def boundary_loaded(self) -> bool:
        return self._boundary is not None

    def get_boundary(self) -> BoundaryPolygon:
        """Load the region boundary once (falls back to a rectangle on failure)."""
        with self._boundary_lock:
            if self._boundary is None:
                self._boundary = self.boundary_pipeline.load()
                logger.info(
                    f"Boundary ready: {self._boundary.name} "
                    f"({len(self._boundary.ring)} vertices)"
                )
            return self._boundary

    def _fetch_current(self, layer: str) -> SampleSet:
        grid = generate_grid(CURRENT_GRID_STEP, self.get_boundary())
        logger.info(f"Generated {len(grid)} grid points for {self.region}")

        results = self.client.fetch_all_current(grid, layer)
        validation = self.client.validate(results, layer)
        for issue in validation.issues:
            logger.warning(f"{layer} data quality: {issue}")
        logger.info(f"{layer} samples: {validation}")

        return SampleSet(
            layer=layer,
            samples=[r for r in results if r is not None],
            total_points=len(grid),
        )

    def _fetch_forecasts(self, layer: str, days: int) -> ForecastSet:
        grid = generate_grid(FORECAST_GRID_STEP, self.get_boundary())
        logger.info(f"Generated {len(grid)} grid points for {days}-day forecast")

        results = self.client.fetch_all_forecasts(grid, layer, days)
        return ForecastSet(layer=layer, days=days, results=results)

    def current_samples(self, layer: str) -> SampleSet:
        """Current conditions for a layer (cached for 1 hour)."""
        key = SampleCache.make_key(self.region, layer)
        return self.cache.get_or_fetch(
            key,
            lambda: self._fetch_current(layer),
            ttl=CURRENT_TTL_SECONDS,
            cache_if=lambda sample_set: bool(sample_set.samples),
        )

    def forecast_set(self, layer: str, days: int) -> ForecastSet:
        """Forecasts for a layer and window (cached for 2 hours)."""
        key = SampleCache.make_key(self.region, layer, days)
        return self.cache.get_or_fetch(
            key,
            lambda: self._fetch_forecasts(layer, days),
            ttl=FORECAST_TTL_SECONDS,
            cache_if=lambda forecast_set: bool(forecast_set.valid_results),
        )

    def samples_for(self, layer: str, days: int = 1, day: int = 0) -> list[SamplePoint]:
        """Samples to interpolate for a layer and (optional) forecast day."""
        if is_forecast_request(days, day):
            return self.forecast_set(layer, days).samples_for_day(day)
        return self.current_samples(layer).samples

    def soil_data(self, layer: str, days: int = 1, day: int = 0) -> SoilDataResponse:
        """Build the /soil-data payload."""
        if not is_forecast_request(days, day):
            sample_set = self.current_samples(layer)
            return SoilDataResponse(
                data=[
                    SoilDataPoint(lat=s.lat, lon=s.lon, value=s.value, timestamp=s.timestamp)
                    for s in sample_set.samples
                ],
                layer=layer,
                timestamp=sample_set.fetched_at,
                total_points=sample_set.total_points,
                valid_points=len(sample_set.samples),
            )

        forecast_set = self.forecast_set(layer, days)
        data = []
        for sample in forecast_set.samples_for_day(day):
            selected = sample.forecast_series[day]
            data.append(
                SoilDataPoint(
                    lat=sample.lat,
                    lon=sample.lon,
                    value=sample.value,
                    timestamp=sample.timestamp,
                    date=selected.date,
                    precipitation=selected.precipitation,
                    forecast_series=[
                        ForecastDayModel(
                            date=d.date,
                            time=d.time,
                            value=d.value,
                            precipitation=d.precipitation,
                        )
                        for d in sample.forecast_series
                    ],
                )
            )

        logger.info(f"Prepared forecast: {len(data)} points for day {day}")

        return SoilDataResponse(
            data=data,
            layer=layer,
            timestamp=_now_iso(),
            total_points=len(forecast_set.results),
            valid_points=len(data),
            forecast=self._forecast_info(forecast_set, days, day),
        )

    @staticmethod
    def _forecast_info(forecast_set: ForecastSet, days: int, day: int) -> ForecastInfo:
        valid = forecast_set.valid_results
        total = len(forecast_set.results)

        # Region-wide dates and precipitation come from the first good point
        first = valid[0] if valid else None
        dates = first.dates if first else []
        precipitation = first.precipitation if first else []

        total_rain = sum(precipitation)
        coverage = round(len(valid) / total * 100) if total else 0

        return ForecastInfo(
            total_days=days,
            selected_day=day,
            dates=dates,
            precipitation=precipitation,
            precipitation_stats=PrecipitationStats(
                total_rain=total_rain,
                rainy_days=sum(p > RAINY_DAY_THRESHOLD for p in precipitation),
                avg_daily=total_rain / days,
            ),
            success_rate=f"{len(valid)}/{total}",
            coverage=f"{coverage}%",
        )

    def render(
        self, viewport: Viewport, layer: str, days: int = 1, day: int = 0
    ) -> Optional[Overlay]:
        """Render the interpolated overlay for a viewport."""
        samples = self.samples_for(layer, days, day)
        return render_overlay(
            viewport,
            samples,
            layer,
            self.get_boundary(),
            simplify_tolerance=RENDER_SIMPLIFY_TOLERANCE,
        )

    def point_forecast(
        self, lat: float, lon: float, layer: str, days: int = 7
    ) -> Optional[ForecastResult]:
        """Uncached forecast for a single location."""
        return self.client.fetch_forecast(GridPoint.rounded(lat, lon), layer, days)
