"""Data models for fetched samples and the cache layer."""

from dataclasses import dataclass, field
from typing import Any, Optional

LAYERS = ("moisture", "temperature")


@dataclass(frozen=True)
class ForecastDay:
    """One day of a point forecast (noon value + daily precipitation)."""

    date: str  # YYYY-MM-DD
    value: float
    precipitation: float  # mm, sum of the day's hourly values
    time: str = ""  # ISO timestamp of the representative hour


@dataclass(frozen=True)
class SamplePoint:
    """A valued sample at a grid location.

    ``value`` is already in the layer's unit (percent for moisture, °C for
    temperature). Forecast samples carry the full daily series.
    """

    lat: float
    lon: float
    value: float
    timestamp: str
    forecast_series: tuple[ForecastDay, ...] = ()


@dataclass
class ForecastResult:
    """Daily forecast series for one grid point."""

    lat: float
    lon: float
    days: list[ForecastDay] = field(default_factory=list)

    def sample_for_day(self, day: int) -> Optional[SamplePoint]:
        """Build the SamplePoint for a forecast day, or None if the day is missing."""
        if day < 0 or day >= len(self.days):
            return None
        selected = self.days[day]
        return SamplePoint(
            lat=self.lat,
            lon=self.lon,
            value=selected.value,
            timestamp=selected.time or selected.date,
            forecast_series=tuple(self.days),
        )

    @property
    def dates(self) -> list[str]:
        return [d.date for d in self.days]

    @property
    def precipitation(self) -> list[float]:
        return [d.precipitation for d in self.days]


@dataclass
class CacheEntry:
    """Stored cache value with its expiry (monotonic clock seconds)."""

    value: Any
    stored_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at
