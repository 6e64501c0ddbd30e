"""Palette interpolation, NDVI color rasters and legend ramps."""

from __future__ import annotations

import logging
import warnings
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
import rasterio
from rasterio.errors import NotGeoreferencedWarning

from cog2ndvi.raster.models import IndexResult

LOGGER = logging.getLogger("cog2ndvi.palette")

RGB = Tuple[int, int, int]

DEFAULT_PALETTE = "rdylgn"
NODATA_RGBA = (30, 30, 30, 0)

PALETTES: Dict[str, Tuple[RGB, ...]] = {
    "rdylgn": (
        (165, 0, 38),
        (215, 48, 39),
        (244, 109, 67),
        (253, 174, 97),
        (254, 224, 139),
        (255, 255, 191),
        (217, 239, 139),
        (166, 217, 106),
        (102, 189, 99),
        (26, 152, 80),
        (0, 104, 55),
    ),
    "viridis": (
        (68, 1, 84),
        (59, 82, 139),
        (33, 145, 140),
        (94, 201, 98),
        (253, 231, 37),
    ),
    "spectral": (
        (158, 1, 66),
        (213, 62, 79),
        (253, 174, 97),
        (255, 255, 191),
        (171, 221, 164),
        (43, 131, 186),
        (94, 79, 162),
    ),
    "greens": ((247, 252, 245), (0, 109, 44)),
    "ylgn": ((255, 255, 229), (120, 198, 121), (0, 104, 55)),
}


def palette_stops(name: str) -> Tuple[RGB, ...]:
    """Return color stops for a palette, falling back to the default."""
    stops = PALETTES.get(name)
    if stops is None:
        LOGGER.debug("Unknown palette %r; using %s", name, DEFAULT_PALETTE)
        return PALETTES[DEFAULT_PALETTE]
    return stops


def interpolate(t: np.ndarray, stops: Tuple[RGB, ...]) -> np.ndarray:
    """Piecewise-linear interpolation of positions in [0, 1] across stops.

    Returns a uint8 array of shape ``t.shape + (3,)``. Positions outside the
    unit interval clamp to the first/last stop.
    """
    table = np.asarray(stops, dtype=np.float64)
    segments = len(stops) - 1
    position = np.clip(np.asarray(t, dtype=np.float64), 0.0, 1.0) * segments
    index = np.minimum(np.floor(position).astype(np.int64), segments - 1)
    frac = (position - index)[..., np.newaxis]
    start = table[index]
    end = table[index + 1]
    # half-up rounding, channels are non-negative
    return np.floor(start + (end - start) * frac + 0.5).astype(np.uint8)


def apply_palette(t: float, name: str = DEFAULT_PALETTE) -> RGB:
    """Map a normalized scalar in [0, 1] to an RGB triple."""
    red, green, blue = interpolate(np.array([t]), palette_stops(name))[0]
    return (int(red), int(green), int(blue))


def normalize_index(values: np.ndarray) -> np.ndarray:
    """Map index values from [-1, 1] to [0, 1]."""
    return np.clip((values + 1.0) / 2.0, 0.0, 1.0)


def render_index(result: IndexResult, name: str = DEFAULT_PALETTE) -> np.ndarray:
    """Render an index field to an RGBA uint8 array of shape (h, w, 4)."""
    values = result.values
    nodata = np.isnan(values)
    rgba = np.empty((result.height, result.width, 4), dtype=np.uint8)
    rgba[..., :3] = interpolate(normalize_index(np.where(nodata, 0.0, values)), palette_stops(name))
    rgba[..., 3] = 255
    rgba[nodata] = NODATA_RGBA
    return rgba


def legend_ramp(name: str = DEFAULT_PALETTE, width: int = 256) -> np.ndarray:
    """Return a (width, 3) uint8 gradient sweeping the palette from 0 to 1."""
    if width < 1:
        raise ValueError("Legend width must be positive.")
    if width == 1:
        positions = np.zeros(1)
    else:
        positions = np.arange(width, dtype=np.float64) / (width - 1)
    return interpolate(positions, palette_stops(name))


def write_png(path: Path, image: np.ndarray) -> Path:
    """Write an (h, w, 3|4) uint8 image as a PNG display artifact."""
    if image.ndim != 3 or image.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (h, w, 3|4) image, got shape {image.shape}")
    height, width, count = image.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", NotGeoreferencedWarning)
        with rasterio.open(
            path,
            "w",
            driver="PNG",
            width=width,
            height=height,
            count=count,
            dtype="uint8",
        ) as dataset:
            dataset.write(np.moveaxis(image, -1, 0))
    return path
