"""Visualization for the soil heat map.

This module provides the color scales, the raster compositor that turns a
sample set into a georeferenced overlay image, and the pydeck handoff.
"""

from .colors import (
    MOISTURE_COLOR_STOPS,
    TEMPERATURE_COLOR_STOPS,
    ColorStop,
    color_scale,
    layer_color_stops,
    value_to_color,
    value_to_hex,
)
from .compositor import (
    Overlay,
    OverlayRenderer,
    Viewport,
    get_optimal_resolution,
    render_overlay,
)

__all__ = [
    "ColorStop",
    "MOISTURE_COLOR_STOPS",
    "TEMPERATURE_COLOR_STOPS",
    "color_scale",
    "layer_color_stops",
    "value_to_color",
    "value_to_hex",
    "Overlay",
    "OverlayRenderer",
    "Viewport",
    "get_optimal_resolution",
    "render_overlay",
]
