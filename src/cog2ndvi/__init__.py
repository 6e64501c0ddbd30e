"""Windowed COG reads, NDVI computation and palette rendering."""

__version__ = "0.1.0"
