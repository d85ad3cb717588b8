"""FastAPI application for the soil heat map.

Provides REST API endpoints for:
- Soil samples (current conditions and multi-day forecasts)
- Region boundary GeoJSON
- Server-side rendered overlay PNGs and legend data
- Health checks

Example:
    >>> from soilmap.api import create_app
    >>> app = create_app()
    >>> # Run with: uvicorn soilmap.api.app:app --reload
"""

import logging
import os
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from soilmap.api.schemas import (
    MAX_FORECAST_DAYS,
    BoundaryErrorResponse,
    BoundaryResponse,
    ErrorResponse,
    ForecastDayModel,
    HealthResponse,
    LegendEntry,
    LegendResponse,
    PointForecastResponse,
    PointForecastStats,
    SoilDataResponse,
)
from soilmap.api.service import RAINY_DAY_THRESHOLD, SoilDataService
from soilmap.cache import LAYERS
from soilmap.pipelines import BoundaryPipeline
from soilmap.pipelines.boundary import DEFAULT_REGION
from soilmap.pipelines.openmeteo import layer_parameter
from soilmap.utils import BoundingBox
from soilmap.visualization import Viewport, color_scale
from soilmap.visualization.colors import LAYER_UNITS

logger = logging.getLogger(__name__)

# API version
API_VERSION = "1.0.0"

# Largest overlay the server renders, per side in pixels
MAX_OVERLAY_SIZE = 4096
DEFAULT_OVERLAY_ZOOM = 7.0

# Environment configuration
BOUNDARY_PATH_ENV = "SOILMAP_BOUNDARY_PATH"
BOUNDARY_URL_ENV = "SOILMAP_BOUNDARY_URL"
REGION_ENV = "SOILMAP_REGION"


def service_from_env() -> SoilDataService:
    """Build a SoilDataService configured from environment variables."""
    boundary = BoundaryPipeline(
        region=os.environ.get(REGION_ENV) or DEFAULT_REGION,
        path=os.environ.get(BOUNDARY_PATH_ENV) or None,
        url=os.environ.get(BOUNDARY_URL_ENV) or None,
    )
    return SoilDataService(boundary_pipeline=boundary)


# Global service
_service: Optional[SoilDataService] = None


def get_service() -> SoilDataService:
    """Get or create global soil data service."""
    global _service
    if _service is None:
        _service = service_from_env()
    return _service


def _check_layer(layer: Optional[str]) -> str:
    if layer not in LAYERS:
        raise HTTPException(
            status_code=400,
            detail='Invalid layer. Must be "moisture" or "temperature"',
        )
    return layer


def _check_window(days: int, day: int) -> None:
    if days < 1 or days > MAX_FORECAST_DAYS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid days: {days}. Must be between 1 and {MAX_FORECAST_DAYS}",
        )
    if day < 0 or day >= days:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid day: {day}. Must be between 0 and {days - 1}",
        )


def create_app(service: Optional[SoilDataService] = None) -> FastAPI:
    """Create FastAPI application.

    Args:
        service: Soil data service (defaults to one configured from env)

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title="Soil Map API",
        description="Soil moisture and soil temperature heat map for North Kazakhstan",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    svc = service if service is not None else get_service()

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Handle HTTP exceptions with custom response."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(error=str(exc.detail)).model_dump(),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Report malformed query parameters as 400."""
        messages = [
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        return JSONResponse(
            status_code=400,
            content=ErrorResponse(error="; ".join(messages) or "Invalid request").model_dump(),
        )

    @app.get("/", tags=["info"])
    async def root():
        """Root endpoint with API info."""
        return {
            "name": "Soil Map API",
            "version": API_VERSION,
            "region": svc.region,
            "layers": list(LAYERS),
            "docs": "/docs",
        }

    @app.get("/health", response_model=HealthResponse, tags=["info"])
    async def health_check():
        """Health check endpoint."""
        return HealthResponse(
            status="healthy",
            boundary_loaded=svc.boundary_loaded,
            cache_entries=len(svc.cache),
            version=API_VERSION,
        )

    @app.get(
        "/soil-data",
        response_model=SoilDataResponse,
        response_model_exclude_none=True,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid request"},
            500: {"model": ErrorResponse, "description": "Server error"},
        },
        tags=["data"],
    )
    def soil_data(
        layer: Optional[str] = Query(default=None, description="moisture or temperature"),
        days: int = Query(default=1, description="Forecast window in days"),
        day: int = Query(default=0, description="Forecast day to show (0 = today)"),
    ):
        """Get interpolation samples for a layer.

        With days > 1 or day > 0 the response carries one forecast day plus
        forecast metadata (dates, precipitation, coverage).
        """
        _check_layer(layer)
        _check_window(days, day)

        try:
            return svc.soil_data(layer, days, day)
        except Exception as e:
            logger.error(f"Error in soil-data API: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

    @app.get(
        "/boundary",
        response_model=BoundaryResponse,
        responses={500: {"model": BoundaryErrorResponse}},
        tags=["data"],
    )
    def boundary():
        """Get the region boundary as a GeoJSON Feature."""
        try:
            region = svc.get_boundary()
        except Exception as e:
            logger.error(f"Boundary API error: {e}")
            return JSONResponse(
                status_code=500,
                content=BoundaryErrorResponse(error=str(e) or "Failed to load boundary").model_dump(),
            )
        return BoundaryResponse(success=True, boundary=region.to_feature())

    @app.get(
        "/overlay.png",
        responses={
            200: {"content": {"image/png": {}}, "description": "Rendered overlay"},
            204: {"description": "Nothing to draw"},
            400: {"model": ErrorResponse, "description": "Invalid request"},
        },
        tags=["render"],
    )
    def overlay_png(
        layer: Optional[str] = Query(default=None),
        days: int = Query(default=1),
        day: int = Query(default=0),
        width: int = Query(default=800, ge=1, le=MAX_OVERLAY_SIZE),
        height: int = Query(default=600, ge=1, le=MAX_OVERLAY_SIZE),
        west: Optional[float] = Query(default=None, ge=-180, le=180),
        south: Optional[float] = Query(default=None, ge=-90, le=90),
        east: Optional[float] = Query(default=None, ge=-180, le=180),
        north: Optional[float] = Query(default=None, ge=-90, le=90),
        zoom: float = Query(default=DEFAULT_OVERLAY_ZOOM, ge=0, le=22),
    ):
        """Render the interpolated overlay for a viewport as a PNG.

        Bounds default to the region's bounding box. The image is meant to be
        stretched over exactly those bounds on the host map.
        """
        _check_layer(layer)
        _check_window(days, day)

        edges = (west, south, east, north)
        if all(edge is None for edge in edges):
            bounds = svc.get_boundary().bbox
        elif any(edge is None for edge in edges):
            raise HTTPException(
                status_code=400,
                detail="Bounds require all of west, south, east, north",
            )
        else:
            bounds = BoundingBox(west=west, south=south, east=east, north=north)
            if bounds.width <= 0 or bounds.height <= 0:
                raise HTTPException(status_code=400, detail="Empty bounds")

        viewport = Viewport(width=width, height=height, bounds=bounds, zoom=zoom)

        try:
            overlay = svc.render(viewport, layer, days, day)
        except Exception as e:
            logger.error(f"Overlay render error: {e}")
            raise HTTPException(status_code=500, detail="Internal server error")

        if overlay is None or overlay.is_empty:
            return Response(status_code=204)

        b = overlay.bounds
        return Response(
            content=overlay.to_png(),
            media_type="image/png",
            headers={
                "X-Overlay-Bounds": f"{b.west},{b.south},{b.east},{b.north}",
                "X-Overlay-Opacity": str(overlay.opacity),
            },
        )

    @app.get("/legend", response_model=LegendResponse, tags=["render"])
    async def legend(layer: Optional[str] = Query(default=None)):
        """Get the discrete legend for a layer."""
        _check_layer(layer)
        return LegendResponse(
            layer=layer,
            unit=LAYER_UNITS[layer],
            entries=[LegendEntry(**entry) for entry in color_scale(layer)],
        )

    @app.get(
        "/forecast-point",
        response_model=PointForecastResponse,
        responses={
            400: {"model": ErrorResponse, "description": "Invalid request"},
            502: {"model": ErrorResponse, "description": "Upstream failure"},
        },
        tags=["data"],
    )
    def forecast_point(
        lat: float = Query(default=54.5, ge=-90, le=90),
        lon: float = Query(default=69.2, ge=-180, le=180),
        layer: str = Query(default="moisture"),
        days: int = Query(default=7),
    ):
        """Get the raw daily forecast series for one location."""
        _check_layer(layer)
        _check_window(days, 0)

        result = svc.point_forecast(lat, lon, layer, days)
        if result is None:
            raise HTTPException(status_code=502, detail="No forecast data available")

        values = [d.value for d in result.days]
        precipitation = result.precipitation

        return PointForecastResponse(
            lat=result.lat,
            lon=result.lon,
            layer=layer,
            parameter=layer_parameter(layer),
            days=[
                ForecastDayModel(date=d.date, time=d.time, value=d.value, precipitation=d.precipitation)
                for d in result.days
            ],
            stats=PointForecastStats(
                total_days=len(result.days),
                unique_values=len(set(values)),
                has_variation=len(set(values)) > 1,
                min_value=min(values) if values else None,
                max_value=max(values) if values else None,
                total_rain=sum(precipitation),
                rainy_days=sum(p > RAINY_DAY_THRESHOLD for p in precipitation),
            ),
        )

    return app


# Default app instance for uvicorn
app = create_app()
