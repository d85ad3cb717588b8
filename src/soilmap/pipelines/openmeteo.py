"""Open-Meteo soil data client.

Fetches hourly soil moisture / soil temperature (10-40 cm) from the
Open-Meteo forecast API for grid points and turns responses into validated
SamplePoint / ForecastResult objects. All upstream failures (timeouts, rate
limiting, malformed payloads) are absorbed here: callers only ever see a
missing sample (None).

API documentation: https://open-meteo.com/en/docs
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, Sequence, TypeVar

import pandas as pd
import requests

from soilmap.cache.models import LAYERS, ForecastDay, ForecastResult, SamplePoint
from soilmap.utils import BasePipeline, GridPoint, ValidationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

LAYER_PARAMETERS = {
    "moisture": "soil_moisture_10_to_40cm",
    "temperature": "soil_temperature_10_to_40cm",
}

# Timezone of the region; daily buckets follow local midnight
DEFAULT_TIMEZONE = "Asia/Almaty"

REQUEST_TIMEOUT = 15  # seconds

# Batching to respect upstream rate limits
BATCH_SIZE = 10
BATCH_DELAY_SECONDS = 1.1

# Hour of day used as the representative daily value
NOON_HOUR = 12

# Plausible value domain per layer, used for validation only
LAYER_DOMAINS = {
    "moisture": (0.0, 100.0),
    "temperature": (-50.0, 60.0),
}


class RateLimitedError(Exception):
    """Upstream answered HTTP 429."""


def layer_parameter(layer: str) -> str:
    """Get the Open-Meteo hourly variable for a layer.

    Raises:
        ValueError: If the layer is unknown
    """
    if layer not in LAYER_PARAMETERS:
        raise ValueError(f"Invalid layer: {layer}. Must be one of {LAYERS}")
    return LAYER_PARAMETERS[layer]


def normalize_value(value: float, layer: str) -> float:
    """Convert a raw API value to the layer's unit.

    Soil moisture arrives as volumetric water content (m³/m³, 0-1) and is
    converted to percent. Values outside 0-1 are kept as-is with a warning.
    Temperature is already °C.
    """
    if layer != "moisture":
        return float(value)
    if 0 <= value <= 1:
        return float(value) * 100
    logger.warning(f"Unexpected moisture value format: {value}")
    return float(value)


class OpenMeteoPipeline(BasePipeline):
    """Soil data collaborator backed by the Open-Meteo forecast API.

    Example:
        >>> pipeline = OpenMeteoPipeline()
        >>> sample = pipeline.fetch_current(GridPoint(54.5, 69.2), "moisture")
        >>> forecasts = pipeline.fetch_all_forecasts(grid, "temperature", days=7)
    """

    def __init__(
        self,
        base_url: str = OPEN_METEO_URL,
        timezone: str = DEFAULT_TIMEZONE,
        timeout: float = REQUEST_TIMEOUT,
        max_retries: int = 2,
        batch_size: int = BATCH_SIZE,
        batch_delay: float = BATCH_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the client.

        Args:
            base_url: Forecast endpoint
            timezone: Timezone passed to the API for forecast requests
            timeout: Per-request timeout in seconds
            max_retries: Retries after the first forecast attempt
            batch_size: Points fetched concurrently per batch
            batch_delay: Pause between batches in seconds
            sleep: Sleep function (injectable for tests)
        """
        self.base_url = base_url
        self.timezone = timezone
        self.timeout = timeout
        self.max_retries = max_retries
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self._sleep = sleep

    def _get_json(self, params: dict) -> dict:
        response = requests.get(self.base_url, params=params, timeout=self.timeout)
        if response.status_code == 429:
            raise RateLimitedError(f"Rate limited (429) for {params.get('latitude')}, {params.get('longitude')}")
        response.raise_for_status()
        return response.json()

    def fetch_current(self, point: GridPoint, layer: str) -> Optional[SamplePoint]:
        """Fetch the latest available value for a point.

        Args:
            point: Grid location
            layer: "moisture" or "temperature"

        Returns:
            SamplePoint, or None if the request failed or returned no data
        """
        parameter = layer_parameter(layer)
        params = {
            "latitude": point.lat,
            "longitude": point.lon,
            "hourly": parameter,
            "forecast_days": 1,
        }

        try:
            data = self._get_json(params)
        except (requests.RequestException, RateLimitedError, ValueError) as e:
            logger.warning(f"Failed to fetch data for {point.lat}, {point.lon}: {e}")
            return None

        hourly = data.get("hourly") or {}
        values = hourly.get(parameter) or []
        times = hourly.get("time") or []

        if not values:
            logger.warning(f"No data available for {point.lat}, {point.lon}")
            return None

        # Most recent non-null value
        for i in range(len(values) - 1, -1, -1):
            if values[i] is not None:
                timestamp = times[i] if i < len(times) else pd.Timestamp.utcnow().isoformat()
                return SamplePoint(
                    lat=point.lat,
                    lon=point.lon,
                    value=normalize_value(values[i], layer),
                    timestamp=timestamp,
                )

        logger.warning(f"No valid data found for {point.lat}, {point.lon}")
        return None

    def _parse_forecast(
        self, point: GridPoint, layer: str, data: dict, days: int
    ) -> ForecastResult:
        parameter = layer_parameter(layer)
        hourly = data.get("hourly") or {}
        if parameter not in hourly or "time" not in hourly:
            raise ValueError("Invalid forecast data structure")

        times = hourly["time"]
        values = hourly[parameter]
        precipitation = hourly.get("precipitation") or []

        daily = []
        for day in range(days):
            noon = day * 24 + NOON_HOUR
            if noon >= len(values) or values[noon] is None:
                continue

            day_precip = sum(p or 0 for p in precipitation[day * 24:(day + 1) * 24])
            daily.append(
                ForecastDay(
                    date=times[noon].split("T")[0],
                    value=normalize_value(values[noon], layer),
                    precipitation=float(day_precip),
                    time=times[noon],
                )
            )

        return ForecastResult(lat=point.lat, lon=point.lon, days=daily)

    def fetch_forecast(
        self, point: GridPoint, layer: str, days: int = 7
    ) -> Optional[ForecastResult]:
        """Fetch a multi-day forecast for a point.

        The noon value of each day is the representative value; daily
        precipitation is the sum of that day's hourly values. Rate-limited
        requests wait 1s, 2s, ... before retrying; other failures wait 1s.

        Args:
            point: Grid location
            layer: "moisture" or "temperature"
            days: Number of forecast days

        Returns:
            ForecastResult, or None after all retries failed
        """
        parameter = layer_parameter(layer)
        params = {
            "latitude": point.lat,
            "longitude": point.lon,
            "hourly": f"{parameter},precipitation",
            "forecast_days": days,
            "timezone": self.timezone,
        }

        for attempt in range(self.max_retries + 1):
            try:
                data = self._get_json(params)
                return self._parse_forecast(point, layer, data, days)
            except RateLimitedError as e:
                if attempt < self.max_retries:
                    wait = attempt + 1
                    logger.warning(
                        f"{e}. Retrying in {wait}s... (attempt {attempt + 1}/{self.max_retries})"
                    )
                    self._sleep(wait)
                    continue
                logger.error(
                    f"Rate limit exceeded for {point.lat}, {point.lon} "
                    f"after {self.max_retries} retries"
                )
                return None
            except (requests.RequestException, ValueError, KeyError, TypeError) as e:
                if attempt < self.max_retries:
                    self._sleep(1)
                    continue
                logger.error(
                    f"Failed to fetch forecast for {point.lat}, {point.lon} "
                    f"after {self.max_retries + 1} attempts: {e}"
                )
                return None

        return None

    def _run_batched(
        self, points: Sequence[GridPoint], fetch: Callable[[GridPoint], T]
    ) -> list[Optional[T]]:
        results: list[Optional[T]] = []
        total_batches = (len(points) + self.batch_size - 1) // self.batch_size

        with ThreadPoolExecutor(max_workers=self.batch_size) as executor:
            for start in range(0, len(points), self.batch_size):
                batch = points[start:start + self.batch_size]
                logger.info(
                    f"Processing batch {start // self.batch_size + 1}/{total_batches} "
                    f"({len(batch)} points)"
                )
                # map() preserves input order
                results.extend(executor.map(fetch, batch))

                if start + self.batch_size < len(points):
                    self._sleep(self.batch_delay)

        return results

    def fetch_all_current(
        self, points: Sequence[GridPoint], layer: str
    ) -> list[Optional[SamplePoint]]:
        """Fetch current values for all points.

        Returns:
            One entry per input point, in order; None for failures
        """
        layer_parameter(layer)
        logger.info(f"Fetching {layer} data for {len(points)} points...")
        results = self._run_batched(points, lambda p: self.fetch_current(p, layer))
        valid = sum(r is not None for r in results)
        logger.info(f"Successfully fetched {valid}/{len(points)} data points")
        return results

    def fetch_all_forecasts(
        self, points: Sequence[GridPoint], layer: str, days: int = 7
    ) -> list[Optional[ForecastResult]]:
        """Fetch forecasts for all points.

        Returns:
            One entry per input point, in order; None for failures
        """
        layer_parameter(layer)
        logger.info(f"Fetching {days}-day {layer} forecasts for {len(points)} points...")
        results = self._run_batched(
            points, lambda p: self.fetch_forecast(p, layer, days)
        )
        valid = sum(r is not None for r in results)
        logger.info(f"Successfully fetched {valid}/{len(points)} forecast points")
        return results

    def validate(self, data: Any, layer: Optional[str] = None) -> ValidationResult:
        """Validate a fetched sample list (None entries are failed fetches).

        Args:
            data: List of SamplePoint or None
            layer: Layer tag, enables the value domain check

        Returns:
            ValidationResult with missing percentage and out-of-domain count
        """
        total = len(data)
        samples = [s for s in data if s is not None]
        missing_pct = (total - len(samples)) / total * 100 if total else 100.0

        issues = []
        outliers = 0
        if layer in LAYER_DOMAINS:
            low, high = LAYER_DOMAINS[layer]
            outliers = sum(not (low <= s.value <= high) for s in samples)
            if outliers:
                issues.append(f"{outliers} values outside {low}..{high}")

        if not samples:
            issues.append("No valid samples")

        values = [s.value for s in samples]
        if len(set(values)) == 1 and len(values) > 1:
            issues.append("All samples have the same value")

        stats = {}
        if values:
            stats = {
                "min": min(values),
                "max": max(values),
                "mean": sum(values) / len(values),
                "unique": len(set(values)),
            }

        return ValidationResult(
            valid=bool(samples),
            total_rows=total,
            missing_pct=missing_pct,
            outliers_count=outliers,
            issues=issues,
            stats=stats,
        )

    @staticmethod
    def to_dataframe(samples: Sequence[Optional[SamplePoint]]) -> pd.DataFrame:
        """Convert samples to a DataFrame (lat, lon, value, timestamp)."""
        rows = [
            {"lat": s.lat, "lon": s.lon, "value": s.value, "timestamp": s.timestamp}
            for s in samples
            if s is not None
        ]
        return pd.DataFrame(rows, columns=["lat", "lon", "value", "timestamp"])
