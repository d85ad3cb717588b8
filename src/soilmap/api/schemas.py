"""Pydantic schemas for API responses.

Field names on the wire are camelCase (``totalPoints``, ``validPoints``, ...)
to match the map front-end; Python attributes stay snake_case.
"""

from typing import Any, Optional

from pydantic import BaseModel, Field

# Longest forecast window the Open-Meteo forecast API serves
MAX_FORECAST_DAYS = 16


class ForecastDayModel(BaseModel):
    """One day of a point forecast."""

    date: str = Field(..., description="Local date (YYYY-MM-DD)")
    time: str = Field(default="", description="Timestamp of the representative hour")
    value: float = Field(..., description="Noon value in the layer's unit")
    precipitation: float = Field(default=0.0, ge=0, description="Daily precipitation in mm")


class SoilDataPoint(BaseModel):
    """A valued sample on the grid.

    Attributes:
        lat: Latitude
        lon: Longitude
        value: Moisture in percent or temperature in °C
        timestamp: Observation / forecast timestamp
        date: Forecast date (forecast mode only)
        precipitation: Daily precipitation in mm (forecast mode only)
        forecast_series: Every forecast day at this point (forecast mode only)
    """

    lat: float
    lon: float
    value: float
    timestamp: str
    date: Optional[str] = None
    precipitation: Optional[float] = None
    forecast_series: Optional[list[ForecastDayModel]] = Field(
        default=None,
        alias="forecastSeries",
    )

    model_config = {"populate_by_name": True}


class PrecipitationStats(BaseModel):
    """Precipitation summary over the forecast window."""

    total_rain: float = Field(..., alias="totalRain", description="Total mm")
    rainy_days: int = Field(..., alias="rainyDays", description="Days above 0.1 mm")
    avg_daily: float = Field(..., alias="avgDaily", description="Mean mm per day")

    model_config = {"populate_by_name": True}


class ForecastInfo(BaseModel):
    """Forecast metadata attached to forecast-mode responses."""

    total_days: int = Field(..., alias="totalDays")
    selected_day: int = Field(..., alias="selectedDay")
    dates: list[str] = Field(default_factory=list)
    precipitation: list[float] = Field(default_factory=list)
    precipitation_stats: PrecipitationStats = Field(..., alias="precipitationStats")
    success_rate: str = Field(..., alias="successRate", description="e.g. '118/120'")
    coverage: str = Field(..., description="e.g. '98%'")

    model_config = {"populate_by_name": True}


class SoilDataResponse(BaseModel):
    """Sample set for one layer (current conditions or one forecast day)."""

    data: list[SoilDataPoint]
    layer: str
    timestamp: str
    total_points: int = Field(..., alias="totalPoints")
    valid_points: int = Field(..., alias="validPoints")
    forecast: Optional[ForecastInfo] = None

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {
                    "data": [
                        {
                            "lat": 54.5,
                            "lon": 69.2,
                            "value": 27.4,
                            "timestamp": "2026-05-14T23:00",
                        }
                    ],
                    "layer": "moisture",
                    "timestamp": "2026-05-14T23:10:04.512000+00:00",
                    "totalPoints": 251,
                    "validPoints": 249,
                }
            ]
        },
    }


class BoundaryResponse(BaseModel):
    """Region boundary as a GeoJSON Feature."""

    success: bool = True
    boundary: dict[str, Any]


class LegendEntry(BaseModel):
    color: str
    label: str
    range: str


class LegendResponse(BaseModel):
    """Discrete legend for a layer."""

    layer: str
    unit: str
    entries: list[LegendEntry]


class PointForecastStats(BaseModel):
    """Variation and precipitation summary for one point."""

    total_days: int = Field(..., alias="totalDays")
    unique_values: int = Field(..., alias="uniqueValues")
    has_variation: bool = Field(..., alias="hasVariation")
    min_value: Optional[float] = Field(default=None, alias="minValue")
    max_value: Optional[float] = Field(default=None, alias="maxValue")
    total_rain: float = Field(..., alias="totalRain")
    rainy_days: int = Field(..., alias="rainyDays")

    model_config = {"populate_by_name": True}


class PointForecastResponse(BaseModel):
    """Raw daily series for one location."""

    lat: float
    lon: float
    layer: str
    parameter: str
    days: list[ForecastDayModel]
    stats: PointForecastStats


class HealthResponse(BaseModel):
    """Health check response.

    Attributes:
        status: Service status ('healthy' or 'unhealthy')
        boundary_loaded: Whether the region boundary is loaded
        cache_entries: Number of live sample sets in the cache
        version: API version
    """

    status: str = Field(
        default="healthy",
        description="Service status",
    )
    boundary_loaded: bool = Field(
        default=False,
        description="Whether the region boundary is loaded",
    )
    cache_entries: int = Field(
        default=0,
        description="Cached sample sets",
    )
    version: str = Field(
        default="1.0.0",
        description="API version",
    )


class ErrorResponse(BaseModel):
    """Error response schema.

    Attributes:
        error: Human-readable error message
    """

    error: str = Field(
        ...,
        description="Error message",
    )


class BoundaryErrorResponse(BaseModel):
    success: bool = False
    error: str
