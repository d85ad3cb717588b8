"""Tests for color scale definitions."""

import pytest

from soilmap.visualization.colors import (
    LAYER_UNITS,
    MOISTURE_COLOR_STOPS,
    MOISTURE_LEGEND,
    TEMPERATURE_COLOR_STOPS,
    TEMPERATURE_LEGEND,
    color_scale,
    hex_to_rgb,
    layer_color_stops,
    rgb_to_hex,
    value_to_color,
    value_to_hex,
)


class TestColorStops:
    """Tests for the color-stop tables."""

    def test_moisture_domain(self):
        assert len(MOISTURE_COLOR_STOPS) == 13
        assert MOISTURE_COLOR_STOPS[0].value == 0
        assert MOISTURE_COLOR_STOPS[-1].value == 100

    def test_temperature_domain(self):
        assert len(TEMPERATURE_COLOR_STOPS) == 6
        assert TEMPERATURE_COLOR_STOPS[0].value == -10
        assert TEMPERATURE_COLOR_STOPS[-1].value == 40

    @pytest.mark.parametrize("stops", [MOISTURE_COLOR_STOPS, TEMPERATURE_COLOR_STOPS])
    def test_sorted_and_valid_channels(self, stops):
        values = [s.value for s in stops]
        assert values == sorted(values)
        for stop in stops:
            assert all(0 <= c <= 255 for c in (stop.r, stop.g, stop.b))

    def test_layer_lookup(self):
        assert layer_color_stops("moisture") is MOISTURE_COLOR_STOPS
        assert layer_color_stops("temperature") is TEMPERATURE_COLOR_STOPS

    def test_unknown_layer(self):
        with pytest.raises(ValueError, match="Unknown layer"):
            layer_color_stops("humidity")


class TestValueToColor:
    """Tests for piecewise-linear color interpolation."""

    def test_first_stop(self):
        assert value_to_color(0, MOISTURE_COLOR_STOPS) == (92, 51, 23)
        assert value_to_color(-10, TEMPERATURE_COLOR_STOPS) == (0, 0, 255)

    def test_exact_stops(self):
        for stop in MOISTURE_COLOR_STOPS:
            assert value_to_color(stop.value, MOISTURE_COLOR_STOPS) == (stop.r, stop.g, stop.b)

    def test_interpolates_between_stops(self):
        assert value_to_color(2.5, MOISTURE_COLOR_STOPS) == (116, 60, 21)

    @pytest.mark.parametrize("stops", [MOISTURE_COLOR_STOPS, TEMPERATURE_COLOR_STOPS])
    @pytest.mark.parametrize("t", [0.25, 0.5, 0.75])
    def test_linear_within_every_stop_pair(self, stops, t):
        """Each channel moves linearly between neighbouring stops."""
        for lower, upper in zip(stops, stops[1:]):
            if upper.value == lower.value:
                continue
            value = lower.value + t * (upper.value - lower.value)
            rgb = value_to_color(value, stops)
            expected = [
                lo + t * (hi - lo)
                for lo, hi in ((lower.r, upper.r), (lower.g, upper.g), (lower.b, upper.b))
            ]
            for channel, want in zip(rgb, expected):
                assert abs(channel - want) <= 1, (value, rgb, expected)

    def test_clamps_below_and_above(self):
        assert value_to_color(-20, MOISTURE_COLOR_STOPS) == (92, 51, 23)
        assert value_to_color(150, MOISTURE_COLOR_STOPS) == (0, 0, 100)
        assert value_to_color(-40, TEMPERATURE_COLOR_STOPS) == (0, 0, 255)
        assert value_to_color(55, TEMPERATURE_COLOR_STOPS) == (255, 69, 0)

    def test_returns_ints(self):
        r, g, b = value_to_color(33.3, MOISTURE_COLOR_STOPS)
        assert all(isinstance(c, int) for c in (r, g, b))

    def test_single_stop_table(self):
        stops = MOISTURE_COLOR_STOPS[:1]
        assert value_to_color(50, stops) == (92, 51, 23)


class TestLegend:
    """Tests for legend entries."""

    def test_moisture_scale(self):
        scale = color_scale("moisture")
        assert len(scale) == len(MOISTURE_LEGEND)
        assert scale[0] == {"color": "#5C3317", "label": "Very dry", "range": "0-5%"}

    def test_temperature_scale(self):
        scale = color_scale("temperature")
        assert len(scale) == len(TEMPERATURE_LEGEND)
        assert scale[-1]["label"] == "Hot"

    def test_unknown_layer(self):
        with pytest.raises(ValueError):
            color_scale("wind")

    def test_units(self):
        assert LAYER_UNITS == {"moisture": "%", "temperature": "°C"}


class TestHexConversion:
    """Tests for hex helpers."""

    def test_value_to_hex(self):
        assert value_to_hex(0, "moisture") == "#5c3317"
        assert value_to_hex(-10, "temperature") == "#0000ff"

    def test_hex_round_trip(self):
        assert hex_to_rgb("#4169E1") == (65, 105, 225)
        assert rgb_to_hex(65, 105, 225) == "#4169e1"
