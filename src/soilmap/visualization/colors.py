"""Color scale definitions for soil moisture and soil temperature.

This module provides the continuous color scales used by the overlay
renderer and the discrete legend entries shown next to the map:
- Moisture: brown (dry) → green → blue → navy (saturated), 0-100 %
- Temperature: blue (freezing) → green → yellow → red-orange, -10-40 °C

Colors are provided as:
- Color-stop tables for per-pixel interpolation
- Hex strings for CSS/HTML legends
"""

from typing import NamedTuple, Sequence


class ColorStop(NamedTuple):
    """A (value, color) anchor of a piecewise-linear gradient."""

    value: float
    r: int
    g: int
    b: int


# =============================================================================
# MOISTURE COLOR SCALE
# =============================================================================

# 5 % granularity through the typical range, coarser in the saturated tail
MOISTURE_COLOR_STOPS = (
    ColorStop(0, 92, 51, 23),  # Dark brown
    ColorStop(5, 139, 69, 19),  # Saddle brown
    ColorStop(10, 210, 105, 30),  # Chocolate
    ColorStop(15, 255, 140, 0),  # Dark orange
    ColorStop(20, 255, 215, 0),  # Gold
    ColorStop(25, 154, 205, 50),  # Yellow-green
    ColorStop(30, 50, 205, 50),  # Lime green
    ColorStop(35, 0, 204, 102),  # Green
    ColorStop(40, 0, 206, 209),  # Turquoise
    ColorStop(45, 65, 105, 225),  # Royal blue
    ColorStop(50, 0, 0, 255),  # Blue
    ColorStop(60, 0, 0, 139),  # Dark blue
    ColorStop(100, 0, 0, 100),  # Navy
)

# (hex_color, label, range)
MOISTURE_LEGEND = [
    ("#5C3317", "Very dry", "0-5%"),
    ("#8B4513", "Dry", "6-10%"),
    ("#D2691E", "Dry", "11-15%"),
    ("#FF8C00", "Slightly dry", "16-20%"),
    ("#FFD700", "Normal", "21-25%"),
    ("#9ACD32", "Normal", "26-30%"),
    ("#32CD32", "Moist", "31-35%"),
    ("#00CC66", "Moist", "36-40%"),
    ("#00CED1", "Very moist", "41-45%"),
    ("#4169E1", "Very moist", "46-50%"),
    ("#0000FF", "Saturated", "50%+"),
]


# =============================================================================
# TEMPERATURE COLOR SCALE
# =============================================================================

TEMPERATURE_COLOR_STOPS = (
    ColorStop(-10, 0, 0, 255),  # Blue
    ColorStop(0, 135, 206, 235),  # Sky blue
    ColorStop(10, 144, 238, 144),  # Light green
    ColorStop(20, 255, 255, 0),  # Yellow
    ColorStop(30, 255, 140, 0),  # Dark orange
    ColorStop(40, 255, 69, 0),  # Red-orange
)

TEMPERATURE_LEGEND = [
    ("#0000FF", "Freezing", "< 0°C"),
    ("#87CEEB", "Cold", "0-10°C"),
    ("#90EE90", "Cool", "10-20°C"),
    ("#FFD700", "Warm", "20-30°C"),
    ("#FF4500", "Hot", "> 30°C"),
]

LAYER_UNITS = {
    "moisture": "%",
    "temperature": "°C",
}


def layer_color_stops(layer: str) -> Sequence[ColorStop]:
    """Get the color-stop table for a layer.

    Raises:
        ValueError: If the layer is unknown
    """
    if layer == "moisture":
        return MOISTURE_COLOR_STOPS
    if layer == "temperature":
        return TEMPERATURE_COLOR_STOPS
    raise ValueError(f"Unknown layer: {layer}. Must be 'moisture' or 'temperature'")


def value_to_color(value: float, stops: Sequence[ColorStop]) -> tuple[int, int, int]:
    """Map a value to RGB by piecewise-linear interpolation of color stops.

    The value is clamped to [first.value, last.value]; each channel is
    interpolated independently between the bracketing stops and rounded.

    Args:
        value: Value in the layer's unit
        stops: Color stops sorted by increasing value

    Returns:
        Tuple of (R, G, B) values (0-255)

    Examples:
        >>> value_to_color(0, MOISTURE_COLOR_STOPS)
        (92, 51, 23)
        >>> value_to_color(-10, TEMPERATURE_COLOR_STOPS)
        (0, 0, 255)
        >>> value_to_color(2.5, MOISTURE_COLOR_STOPS)
        (116, 60, 21)
    """
    first, last = stops[0], stops[-1]
    clamped = max(first.value, min(last.value, value))

    lower, upper = first, last
    for i in range(len(stops) - 1):
        if stops[i].value <= clamped <= stops[i + 1].value:
            lower, upper = stops[i], stops[i + 1]
            break

    span = upper.value - lower.value
    factor = 0.0 if span == 0 else (clamped - lower.value) / span

    return (
        round(lower.r + factor * (upper.r - lower.r)),
        round(lower.g + factor * (upper.g - lower.g)),
        round(lower.b + factor * (upper.b - lower.b)),
    )


def value_to_hex(value: float, layer: str) -> str:
    """Convert a layer value to a hex color string."""
    return rgb_to_hex(*value_to_color(value, layer_color_stops(layer)))


def color_scale(layer: str) -> list[dict]:
    """Get legend entries for a layer.

    Returns:
        List of {"color", "label", "range"} dicts, dry/cold first
    """
    if layer == "moisture":
        legend = MOISTURE_LEGEND
    elif layer == "temperature":
        legend = TEMPERATURE_LEGEND
    else:
        raise ValueError(f"Unknown layer: {layer}. Must be 'moisture' or 'temperature'")

    return [
        {"color": color, "label": label, "range": value_range}
        for color, label, value_range in legend
    ]


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple.

    Args:
        hex_color: Hex color string (e.g., "#4169E1")

    Returns:
        Tuple of (R, G, B) values (0-255)
    """
    hex_color = hex_color.lstrip("#")
    return (
        int(hex_color[0:2], 16),
        int(hex_color[2:4], 16),
        int(hex_color[4:6], 16),
    )


def rgb_to_hex(r: int, g: int, b: int) -> str:
    """Convert RGB values to hex color string.

    Args:
        r: Red value (0-255)
        g: Green value (0-255)
        b: Blue value (0-255)

    Returns:
        Hex color string (e.g., "#4169e1")
    """
    return f"#{r:02x}{g:02x}{b:02x}"
