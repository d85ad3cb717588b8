"""Tests for the soilmap command line interface."""

from unittest.mock import Mock, patch

import pandas as pd
import pytest

from soilmap.api.service import SoilDataService
from soilmap.cache import SamplePoint
from soilmap.cli import build_parser, main
from soilmap.pipelines import BoundaryPipeline, OpenMeteoPipeline


def _service_with(samples_fn):
    weather = Mock(spec=OpenMeteoPipeline)
    weather.fetch_all_current.side_effect = samples_fn
    weather.validate.side_effect = OpenMeteoPipeline().validate
    return SoilDataService(boundary_pipeline=BoundaryPipeline(), client=weather)


def _samples(points, layer):
    return [SamplePoint(lat=p.lat, lon=p.lon, value=30.0 + p.lon - 69, timestamp="t") for p in points]


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = build_parser().parse_args(["fetch"])
        assert args.layer == "moisture"
        assert args.days == 1
        assert args.day == 0
        assert args.region == "North Kazakhstan Region"

    def test_invalid_layer(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fetch", "--layer", "wind"])

    def test_zero_day_window(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["fetch", "--days", "0"])

    def test_day_outside_window(self):
        with pytest.raises(SystemExit):
            main(["fetch", "--days", "3", "--day", "3"])

    def test_render_bounds(self):
        args = build_parser().parse_args(["render", "--bounds", "68", "53", "70", "55"])
        assert args.bounds == [68.0, 53.0, 70.0, 55.0]


class TestGridCommand:
    """Tests for `soilmap grid`."""

    def test_writes_csv(self, tmp_path):
        output = tmp_path / "grid.csv"
        assert main(["-q", "grid", "--step", "0.5", "--output", str(output)]) == 0

        df = pd.read_csv(output)
        assert list(df.columns) == ["lat", "lon"]
        assert len(df) > 0
        assert df["lon"].between(66.0, 72.0).all()

    def test_missing_boundary_file_uses_fallback(self, tmp_path):
        output = tmp_path / "grid.csv"
        code = main([
            "-q", "--boundary-path", str(tmp_path / "missing.geojson"),
            "grid", "--step", "0.5", "--output", str(output),
        ])
        assert code == 0
        df = pd.read_csv(output)
        assert df["lon"].min() >= 68.0


class TestFetchCommand:
    """Tests for `soilmap fetch`."""

    def test_writes_samples(self, tmp_path):
        output = tmp_path / "samples.csv"
        with patch("soilmap.cli._service", return_value=_service_with(_samples)):
            assert main(["-q", "fetch", "--layer", "temperature", "-o", str(output)]) == 0

        df = pd.read_csv(output)
        assert list(df.columns) == ["lat", "lon", "value", "timestamp"]
        assert len(df) > 0

    def test_no_samples_fails(self, tmp_path):
        empty = _service_with(lambda points, layer: [None] * len(points))
        with patch("soilmap.cli._service", return_value=empty):
            assert main(["-q", "fetch", "-o", str(tmp_path / "s.csv")]) == 1


class TestRenderCommand:
    """Tests for `soilmap render`."""

    def test_writes_png_and_html(self, tmp_path):
        png = tmp_path / "map.png"
        html = tmp_path / "map.html"
        with patch("soilmap.cli._service", return_value=_service_with(_samples)):
            code = main([
                "-q", "render", "--width", "100", "--height", "80",
                "-o", str(png), "--html", str(html),
            ])

        assert code == 0
        assert png.read_bytes().startswith(b"\x89PNG")
        assert html.exists()

    def test_nothing_to_draw(self, tmp_path):
        empty = _service_with(lambda points, layer: [None] * len(points))
        with patch("soilmap.cli._service", return_value=empty):
            assert main(["-q", "render", "-o", str(tmp_path / "x.png")]) == 1

    def test_errors_return_nonzero(self, tmp_path):
        failing = _service_with(Mock(side_effect=RuntimeError("network down")))
        with patch("soilmap.cli._service", return_value=failing):
            assert main(["-q", "render", "-o", str(tmp_path / "x.png")]) == 1
