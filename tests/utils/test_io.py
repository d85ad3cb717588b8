"""Tests for I/O utilities."""

from pathlib import Path

import pytest

from soilmap.utils.io import get_data_path, get_project_root


class TestGetDataPath:
    """Tests for get_data_path function."""

    def test_valid_kind_and_stage(self, tmp_data_dir):
        """Should return path for valid kind and stage."""
        path = get_data_path("boundaries", "raw")
        assert path.name == "boundaries"
        assert path.parent.name == "raw"
        assert path.parent.parent == tmp_data_dir

    def test_all_kinds(self, tmp_data_dir):
        """Should work for all valid kinds."""
        for kind in ["boundaries", "openmeteo", "overlays"]:
            assert get_data_path(kind, "processed").name == kind

    def test_creates_directory(self, tmp_data_dir):
        """Should create directory if it doesn't exist."""
        path = get_data_path("overlays", "processed")
        assert path.exists()
        assert path.is_dir()

    def test_invalid_kind(self, tmp_data_dir):
        """Should raise ValueError for invalid kind."""
        with pytest.raises(ValueError, match="Invalid kind"):
            get_data_path("snotel", "raw")

    def test_invalid_stage(self, tmp_data_dir):
        """Should raise ValueError for invalid stage."""
        with pytest.raises(ValueError, match="Invalid stage"):
            get_data_path("boundaries", "cache")

    def test_default_stage(self, tmp_data_dir):
        """Should use 'raw' as default stage."""
        assert get_data_path("boundaries").parent.name == "raw"


class TestGetProjectRoot:
    """Tests for get_project_root function."""

    def test_returns_path(self):
        """Should return a Path object."""
        assert isinstance(get_project_root(), Path)

    def test_contains_pyproject(self):
        """Should point to directory containing pyproject.toml."""
        assert (get_project_root() / "pyproject.toml").exists()
