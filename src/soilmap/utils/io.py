"""I/O utilities for data paths."""

import os
from pathlib import Path

# Project root is 4 levels up from this file
_PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# Overrides the data root (useful for deployments and tests)
DATA_DIR_ENV = "SOILMAP_DATA_DIR"


def get_data_path(kind: str, stage: str = "raw") -> Path:
    """Get standardized data path for a collaborator.

    Args:
        kind: One of 'boundaries', 'openmeteo', 'overlays'
        stage: One of 'raw', 'processed'

    Returns:
        Path to the data directory (creates if doesn't exist)

    Example:
        >>> path = get_data_path("boundaries", "raw")
        >>> path
        PosixPath('.../soilmap/data/raw/boundaries')
    """
    valid_kinds = {"boundaries", "openmeteo", "overlays"}
    valid_stages = {"raw", "processed"}

    if kind not in valid_kinds:
        raise ValueError(f"Invalid kind: {kind}. Must be one of {valid_kinds}")
    if stage not in valid_stages:
        raise ValueError(f"Invalid stage: {stage}. Must be one of {valid_stages}")

    root = Path(os.environ.get(DATA_DIR_ENV) or _PROJECT_ROOT / "data")
    path = root / stage / kind
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_project_root() -> Path:
    """Get the project root directory."""
    return _PROJECT_ROOT
