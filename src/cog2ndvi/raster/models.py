"""Data models used by the windowed raster helpers."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from cog2ndvi.errors import InvalidInputError

WGS84_EPSG = 4326

Bounds = Tuple[float, float, float, float]


@dataclass(frozen=True)
class GeoTransform:
    """North-up affine mapping from pixel (col, row) to native CRS coordinates."""

    origin_x: float
    origin_y: float
    x_res: float
    y_res: float
    crs_id: int

    def pixel_to_native(self, col: float, row: float) -> tuple[float, float]:
        """Return native coordinates of a pixel corner."""
        return (self.origin_x + col * self.x_res, self.origin_y + row * self.y_res)


@dataclass(frozen=True)
class RasterMetadata:
    """Geotransform, full dimensions and CRS provenance of an opened raster."""

    transform: GeoTransform
    width: int
    height: int
    crs_source: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def crs_guessed(self) -> bool:
        return self.crs_source == "fallback"

    def native_bounds(self) -> Bounds:
        """Return (xmin, ymin, xmax, ymax) of the full raster."""
        left, top = self.transform.pixel_to_native(0, 0)
        right, bottom = self.transform.pixel_to_native(self.width, self.height)
        return (left, bottom, right, top)


@dataclass(frozen=True)
class GeoBBox:
    """Axis-aligned rectangle in a named CRS."""

    west: float
    south: float
    east: float
    north: float
    crs_id: int = WGS84_EPSG

    def __post_init__(self) -> None:
        values = (self.west, self.south, self.east, self.north)
        if not all(math.isfinite(value) for value in values):
            raise InvalidInputError(f"Bounding box has non-finite coordinates: {values}")
        if not self.west < self.east or not self.south < self.north:
            raise InvalidInputError(
                "Bounding box must satisfy west < east and south < north "
                f"(got {self.west}, {self.south}, {self.east}, {self.north})."
            )

    @classmethod
    def from_bounds(cls, bounds: Bounds, crs_id: int = WGS84_EPSG) -> "GeoBBox":
        west, south, east, north = bounds
        return cls(float(west), float(south), float(east), float(north), crs_id)

    def as_bounds(self) -> Bounds:
        return (self.west, self.south, self.east, self.north)


@dataclass(frozen=True)
class PixelWindow:
    """Half-open integer pixel rectangle."""

    col0: int
    row0: int
    col1: int
    row1: int

    @property
    def width(self) -> int:
        return self.col1 - self.col0

    @property
    def height(self) -> int:
        return self.row1 - self.row0

    def as_list(self) -> list[int]:
        return [self.col0, self.row0, self.col1, self.row1]


@dataclass(frozen=True)
class WindowPlan:
    """Clamped pixel window plus the output size of the resampled read."""

    window: PixelWindow
    out_width: int
    out_height: int


@dataclass(frozen=True)
class EmptyIntersection:
    """The AOI does not overlap the raster; a normal, user-facing outcome."""

    reason: str
    raw_window: tuple[int, int, int, int]
    stage: str = "window"


@dataclass(frozen=True)
class BandWindow:
    """One band's sampled window, row-major."""

    samples: np.ndarray
    width: int
    height: int

    def __post_init__(self) -> None:
        if self.samples.size != self.width * self.height:
            raise InvalidInputError(
                f"Band window holds {self.samples.size} samples, expected "
                f"{self.width}x{self.height}."
            )
        if self.samples.ndim != 2:
            object.__setattr__(self, "samples", self.samples.reshape(self.height, self.width))


@dataclass(frozen=True)
class IndexStats:
    """Summary statistics over valid index samples."""

    min: float
    mean: float
    max: float
    coverage_pct: float
    count: int

    def as_dict(self) -> dict[str, float | int]:
        return {
            "min": self.min,
            "mean": self.mean,
            "max": self.max,
            "coverage_pct": self.coverage_pct,
            "count": self.count,
        }


@dataclass(frozen=True)
class IndexResult:
    """Derived scalar field; NaN marks no-data samples."""

    values: np.ndarray
    width: int
    height: int
    stats: IndexStats
