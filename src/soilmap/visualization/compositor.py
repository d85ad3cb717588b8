"""Raster compositor for the interpolated heat map overlay.

Instead of drawing one shape per sample, the whole visible viewport is
rasterized at a zoom-dependent stride. Each covered block is painted from the
IDW estimate at its top-left pixel, alpha fades with distance to the nearest
raw sample, and a small Gaussian blur hides block edges. The result is an
RGBA image anchored to the viewport's geographic bounds.

Example:
    >>> viewport = Viewport(width=800, height=600, bounds=region.bbox, zoom=7)
    >>> overlay = render_overlay(viewport, samples, "moisture", region)
    >>> png_bytes = overlay.to_png()
"""

import base64
import io
import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import numpy as np
from PIL import Image, ImageFilter

from soilmap.cache.models import SamplePoint
from soilmap.spatial.idw import idw_interpolate, nearest_sample_distance
from soilmap.utils.geo import (
    BoundaryCollection,
    BoundaryPolygon,
    BoundingBox,
    is_point_in_any_polygon,
    simplify_polygon,
)
from soilmap.visualization.colors import layer_color_stops, value_to_color

logger = logging.getLogger(__name__)

# Render defaults
RENDER_MAX_DISTANCE = 1.5  # degrees
RENDER_POWER = 2.0
BLUR_RADIUS = 2.0  # pixels
MIN_ALPHA = 0.3
MAX_ALPHA = 0.8
OVERLAY_OPACITY = 0.7

# Burst of viewport events within this window collapses into one render
RENDER_DEBOUNCE_SECONDS = 0.1

# Boundaries above this vertex count are simplified before the pixel loop
SIMPLIFY_VERTEX_THRESHOLD = 500

# Web Mercator latitude limit
_MAX_MERCATOR_LAT = 85.05112878


def _mercator_y(lat: float) -> float:
    lat = max(-_MAX_MERCATOR_LAT, min(_MAX_MERCATOR_LAT, lat))
    return math.log(math.tan(math.pi / 4 + math.radians(lat) / 2))


def _inverse_mercator_y(y: float) -> float:
    return math.degrees(2 * math.atan(math.exp(y)) - math.pi / 2)


@dataclass
class Viewport:
    """Visible map area in pixels and geographic coordinates.

    Attributes:
        width: Width in pixels
        height: Height in pixels
        bounds: Geographic bounds of the visible area
        zoom: Map zoom level
    """

    width: int
    height: int
    bounds: BoundingBox
    zoom: float

    def pixel_to_geo(self, x: float, y: float) -> tuple[float, float]:
        """Convert a container pixel (origin top-left) to (lat, lon).

        Longitude is linear across the width; latitude follows Web Mercator
        between the north and south edges, like a slippy map.
        """
        lon = self.bounds.west + (x / self.width) * self.bounds.width

        y_north = _mercator_y(self.bounds.north)
        y_south = _mercator_y(self.bounds.south)
        lat = _inverse_mercator_y(y_north - (y / self.height) * (y_north - y_south))

        return lat, lon

    def geo_to_pixel(self, lat: float, lon: float) -> tuple[float, float]:
        """Convert (lat, lon) to a container pixel (x, y)."""
        x = (lon - self.bounds.west) / self.bounds.width * self.width

        y_north = _mercator_y(self.bounds.north)
        y_south = _mercator_y(self.bounds.south)
        y = (y_north - _mercator_y(lat)) / (y_north - y_south) * self.height

        return x, y

    @property
    def center(self) -> tuple[float, float]:
        """(lat, lon) of the viewport center."""
        return self.pixel_to_geo(self.width / 2, self.height / 2)


@dataclass
class Overlay:
    """Rendered overlay image anchored to geographic bounds.

    Attributes:
        image: RGBA image, same pixel size as the viewport
        bounds: Geographic bounds the image is stretched over
        layer: Layer tag the image was rendered for
        resolution: Block size in pixels used for rendering
        painted_cells: Number of blocks that received a color
        opacity: Layer-level opacity for the host map
    """

    image: Image.Image
    bounds: BoundingBox
    layer: str
    resolution: int
    painted_cells: int
    opacity: float = OVERLAY_OPACITY

    @property
    def rgba(self) -> np.ndarray:
        """Pixel buffer as a (height, width, 4) uint8 array."""
        return np.asarray(self.image)

    @property
    def is_empty(self) -> bool:
        return self.painted_cells == 0

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.to_png()).decode("ascii")
        return f"data:image/png;base64,{encoded}"


def get_optimal_resolution(zoom: float) -> int:
    """Get block size in pixels for a zoom level (coarser when zoomed out)."""
    if zoom <= 6:
        return 8
    if zoom <= 8:
        return 6
    if zoom <= 10:
        return 4
    return 3


def _prepare_boundary(boundary: Any, tolerance: Optional[float]) -> Any:
    """Simplify very detailed boundaries to speed up per-pixel tests."""
    if tolerance is None or tolerance <= 0:
        return boundary

    def simplified(region: BoundaryPolygon) -> BoundaryPolygon:
        if len(region.ring) <= SIMPLIFY_VERTEX_THRESHOLD:
            return region
        ring = simplify_polygon(region.ring, tolerance)
        logger.debug(
            f"Simplified boundary {region.name}: {len(region.ring)} -> {len(ring)} vertices"
        )
        return BoundaryPolygon(region.name, ring, dict(region.properties))

    if isinstance(boundary, BoundaryPolygon):
        return simplified(boundary)
    if isinstance(boundary, BoundaryCollection):
        return BoundaryCollection([simplified(r) for r in boundary.regions])
    return boundary


def render_overlay(
    viewport: Viewport,
    samples: Sequence[SamplePoint],
    layer: str,
    boundary: Any = None,
    *,
    power: float = RENDER_POWER,
    max_distance: float = RENDER_MAX_DISTANCE,
    blur_radius: float = BLUR_RADIUS,
    min_alpha: float = MIN_ALPHA,
    max_alpha: float = MAX_ALPHA,
    simplify_tolerance: Optional[float] = None,
) -> Optional[Overlay]:
    """Rasterize interpolated sample values over the viewport.

    Render is a pure function of its inputs. Pixels outside the boundary,
    without a sample within ``max_distance``, or whose value cannot be
    computed are left transparent.

    Args:
        viewport: Visible area (pixel size, geographic bounds, zoom)
        samples: Complete sample set for the layer
        layer: "moisture" or "temperature"
        boundary: Region to clip to (None = no clipping)
        power: IDW falloff exponent
        max_distance: IDW search radius in degrees
        blur_radius: Gaussian blur radius in pixels (0 disables)
        min_alpha: Opacity floor for far-from-sample pixels
        max_alpha: Opacity ceiling for near-sample pixels
        simplify_tolerance: Douglas-Peucker tolerance for detailed boundaries

    Returns:
        Overlay, or None when there are no samples or the viewport is empty
    """
    if not samples:
        logger.debug("No samples, skipping overlay render")
        return None
    if viewport.width <= 0 or viewport.height <= 0:
        return None

    start = time.perf_counter()
    stops = layer_color_stops(layer)
    resolution = get_optimal_resolution(viewport.zoom)
    clip = _prepare_boundary(boundary, simplify_tolerance)

    rgba = np.zeros((viewport.height, viewport.width, 4), dtype=np.uint8)
    painted = 0
    skipped = 0

    for y in range(0, viewport.height, resolution):
        for x in range(0, viewport.width, resolution):
            lat, lon = viewport.pixel_to_geo(x, y)

            if clip is not None and not is_point_in_any_polygon((lon, lat), clip):
                continue

            try:
                value = idw_interpolate(lat, lon, samples, power, max_distance)
                if value is None:
                    continue
                if not math.isfinite(value):
                    skipped += 1
                    continue

                r, g, b = value_to_color(value, stops)
                nearest = nearest_sample_distance(lat, lon, samples)
                alpha = max(min_alpha, min(max_alpha, 1 - nearest * 2))
            except (ArithmeticError, ValueError, TypeError):
                skipped += 1
                continue

            # Numpy slicing clips the block at the buffer edge
            rgba[y:y + resolution, x:x + resolution] = (r, g, b, round(alpha * 255))
            painted += 1

    image = Image.fromarray(rgba)
    if blur_radius > 0:
        # Blur premultiplied so transparent pixels don't darken the edges
        image = (
            image.convert("RGBa")
            .filter(ImageFilter.GaussianBlur(blur_radius))
            .convert("RGBA")
        )

    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Rendered {layer} overlay {viewport.width}x{viewport.height} "
        f"(resolution: {resolution}px, cells: {painted}, skipped: {skipped}, "
        f"{elapsed_ms:.0f}ms)"
    )

    return Overlay(
        image=image,
        bounds=BoundingBox(**viewport.bounds.to_dict()),
        layer=layer,
        resolution=resolution,
        painted_cells=painted,
    )


_UNSET = object()


class OverlayRenderer:
    """Debounced overlay renderer for a host map.

    Every viewport change calls schedule(); a render fires ``delay`` seconds
    after the last call, cancelling any not-yet-fired one. A render already
    in progress always runs to completion. Each finished render replaces
    ``current_overlay`` and is handed to ``on_render`` (None means "remove
    the overlay").

    Example:
        >>> renderer = OverlayRenderer(samples, "moisture", region, on_render=show)
        >>> renderer.schedule(viewport)  # on every pan/zoom/resize
        >>> renderer.update(samples=new_samples)  # on layer/forecast change
    """

    def __init__(
        self,
        samples: Sequence[SamplePoint],
        layer: str,
        boundary: Any = None,
        on_render: Optional[Callable[[Optional[Overlay]], None]] = None,
        delay: float = RENDER_DEBOUNCE_SECONDS,
        **render_options,
    ):
        """Initialize renderer.

        Args:
            samples: Initial sample set
            layer: Layer tag
            boundary: Region to clip to
            on_render: Callback receiving each new overlay (or None)
            delay: Debounce window in seconds
            **render_options: Extra keyword arguments for render_overlay()
        """
        self.samples = list(samples)
        self.layer = layer
        self.boundary = boundary
        self.on_render = on_render
        self.delay = delay
        self.render_options = render_options

        self.current_overlay: Optional[Overlay] = None
        self.last_viewport: Optional[Viewport] = None
        self.render_count = 0

        self._timer: Optional[threading.Timer] = None
        self._state_lock = threading.Lock()
        self._render_lock = threading.Lock()

    def schedule(self, viewport: Viewport) -> None:
        """(Re)schedule a render for the viewport, replacing any pending one."""
        with self._state_lock:
            self.last_viewport = viewport
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(self.delay, self._fire, args=(viewport,))
            self._timer.daemon = True
            self._timer.start()

    def update(
        self,
        samples: Optional[Sequence[SamplePoint]] = None,
        layer: Optional[str] = None,
        boundary: Any = _UNSET,
    ) -> None:
        """Swap the sample set, layer or boundary and re-render the last viewport."""
        with self._state_lock:
            if samples is not None:
                self.samples = list(samples)
            if layer is not None:
                self.layer = layer
            if boundary is not _UNSET:
                self.boundary = boundary
            viewport = self.last_viewport

        if viewport is not None:
            self.schedule(viewport)

    def cancel(self) -> None:
        """Drop a pending render (a running one is not interrupted)."""
        with self._state_lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def render_now(self, viewport: Viewport) -> Optional[Overlay]:
        """Render synchronously with the current snapshot."""
        with self._state_lock:
            self.last_viewport = viewport
            samples, layer, boundary = self.samples, self.layer, self.boundary

        with self._render_lock:
            overlay = render_overlay(
                viewport, samples, layer, boundary, **self.render_options
            )
            self.current_overlay = overlay
            self.render_count += 1
            # Delivered under the lock so callbacks arrive in render order
            if self.on_render is not None:
                self.on_render(overlay)
        return overlay

    def _fire(self, viewport: Viewport) -> None:
        with self._state_lock:
            if self._timer is threading.current_thread():
                self._timer = None
        try:
            self.render_now(viewport)
        except Exception as e:
            logger.error(f"Overlay render failed: {e}")
