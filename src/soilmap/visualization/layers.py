"""PyDeck layers for handing a rendered overlay to the host map."""

from typing import Optional

import pydeck as pdk

from soilmap.utils.geo import BoundaryPolygon
from soilmap.visualization.colors import hex_to_rgb
from soilmap.visualization.compositor import Overlay, Viewport

# Boundary outline color [R, G, B, A]
BOUNDARY_LINE_COLOR = [*hex_to_rgb("#DC2626"), 255]


def create_overlay_layer(overlay: Overlay) -> pdk.Layer:
    """Create a BitmapLayer stretching the overlay image over its bounds.

    Args:
        overlay: Rendered overlay

    Returns:
        PyDeck BitmapLayer
    """
    b = overlay.bounds
    return pdk.Layer(
        "BitmapLayer",
        id=f"soil-{overlay.layer}-overlay",
        image=overlay.to_data_url(),
        bounds=[b.west, b.south, b.east, b.north],
        opacity=overlay.opacity,
        pickable=False,
    )


def create_boundary_layer(boundary: BoundaryPolygon) -> pdk.Layer:
    """Create an outline-only GeoJsonLayer for the region boundary."""
    return pdk.Layer(
        "GeoJsonLayer",
        id="region-boundary",
        data=boundary.to_feature(),
        stroked=True,
        filled=False,
        get_line_color=BOUNDARY_LINE_COLOR,
        line_width_min_pixels=2,
    )


def create_overlay_deck(
    overlay: Optional[Overlay],
    viewport: Viewport,
    boundary: Optional[BoundaryPolygon] = None,
) -> pdk.Deck:
    """Create a Deck showing the overlay (if any) and the boundary outline.

    Args:
        overlay: Rendered overlay, or None for an empty map
        viewport: Viewport the overlay was rendered for
        boundary: Optional region to outline

    Returns:
        PyDeck Deck centered on the viewport
    """
    layers = []
    if overlay is not None:
        layers.append(create_overlay_layer(overlay))
    if boundary is not None:
        layers.append(create_boundary_layer(boundary))

    lat, lon = viewport.center
    return pdk.Deck(
        layers=layers,
        initial_view_state=pdk.ViewState(latitude=lat, longitude=lon, zoom=viewport.zoom),
        map_style="light",
    )
