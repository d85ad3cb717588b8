"""Soil moisture and soil temperature heat map for North Kazakhstan."""

__version__ = "1.0.0"
