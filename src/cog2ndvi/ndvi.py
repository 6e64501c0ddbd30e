"""Normalized difference vegetation index from two band windows."""

from __future__ import annotations

import logging

import numpy as np

from cog2ndvi.config import DEFAULT_VEGETATION_THRESHOLD, Calibration
from cog2ndvi.errors import InvalidInputError
from cog2ndvi.raster.models import BandWindow, IndexResult, IndexStats

LOGGER = logging.getLogger("cog2ndvi.ndvi")


def calibrate(samples: np.ndarray, calibration: Calibration) -> np.ndarray:
    """Convert raw samples to reflectance clamped to [0, 1]."""
    reflect = samples.astype(np.float64) * calibration.scale + calibration.offset
    return np.clip(reflect, 0.0, 1.0)


def index_stats(values: np.ndarray, vegetation_threshold: float) -> IndexStats:
    """Summarize valid (non-NaN) index samples."""
    valid = values[~np.isnan(values)]
    count = int(valid.size)
    if count == 0:
        return IndexStats(min=0.0, mean=0.0, max=0.0, coverage_pct=0.0, count=0)
    vegetated = int((valid > vegetation_threshold).sum())
    vmin = float(valid.min())
    vmax = float(valid.max())
    # min <= mean <= max even when summation rounds past the range
    mean = min(max(float(valid.mean()), vmin), vmax)
    return IndexStats(
        min=vmin,
        mean=mean,
        max=vmax,
        coverage_pct=vegetated / count * 100.0,
        count=count,
    )


def compute_ndvi(
    red: BandWindow,
    nir: BandWindow,
    *,
    calibration: Calibration | None = None,
    vegetation_threshold: float = DEFAULT_VEGETATION_THRESHOLD,
) -> IndexResult:
    """Compute NDVI over the common extent of the red and NIR windows.

    Windows that differ by a few pixels (independent rounding per band) are
    trimmed to the shared top-left extent rather than resampled.
    """
    width = min(red.width, nir.width)
    height = min(red.height, nir.height)
    if width <= 0 or height <= 0:
        raise InvalidInputError(
            f"Band windows have no common extent ({red.width}x{red.height} vs "
            f"{nir.width}x{nir.height}).",
            stage="index",
        )
    if (red.width, red.height) != (nir.width, nir.height):
        LOGGER.debug(
            "Trimming band windows to %sx%s (red %sx%s, nir %sx%s)",
            width,
            height,
            red.width,
            red.height,
            nir.width,
            nir.height,
        )

    calibration = calibration or Calibration()
    red_reflect = calibrate(red.samples[:height, :width], calibration)
    nir_reflect = calibrate(nir.samples[:height, :width], calibration)

    denom = nir_reflect + red_reflect
    values = np.full((height, width), np.nan, dtype=np.float64)
    np.divide(nir_reflect - red_reflect, denom, out=values, where=denom > 0)

    stats = index_stats(values, vegetation_threshold)
    LOGGER.info(
        "NDVI %sx%s: min=%.4f mean=%.4f max=%.4f vegetated=%.1f%%",
        width,
        height,
        stats.min,
        stats.mean,
        stats.max,
        stats.coverage_pct,
        extra={"stage": "index"},
    )
    return IndexResult(values=values, width=width, height=height, stats=stats)
