"""Windowed raster access helpers and exports."""

from cog2ndvi.raster.crs import is_geographic, normalize_crs, reproject_bbox, transformer
from cog2ndvi.raster.fetch import RESAMPLING_CHOICES, read_window
from cog2ndvi.raster.info import open_raster, read_metadata
from cog2ndvi.raster.models import (
    BandWindow,
    EmptyIntersection,
    GeoBBox,
    GeoTransform,
    IndexResult,
    IndexStats,
    PixelWindow,
    RasterMetadata,
    WindowPlan,
)
from cog2ndvi.raster.window import output_size, plan_window, raw_window

__all__ = [
    "BandWindow",
    "EmptyIntersection",
    "GeoBBox",
    "GeoTransform",
    "IndexResult",
    "IndexStats",
    "PixelWindow",
    "RESAMPLING_CHOICES",
    "RasterMetadata",
    "WindowPlan",
    "is_geographic",
    "normalize_crs",
    "open_raster",
    "output_size",
    "plan_window",
    "raw_window",
    "read_metadata",
    "read_window",
    "reproject_bbox",
    "transformer",
]
