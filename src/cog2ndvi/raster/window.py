"""Native-CRS extent to pixel window mapping."""

from __future__ import annotations

import logging
import math

from cog2ndvi.config import DEFAULT_MAX_DIM
from cog2ndvi.errors import InvalidInputError
from cog2ndvi.raster.models import (
    EmptyIntersection,
    GeoBBox,
    GeoTransform,
    PixelWindow,
    WindowPlan,
)

LOGGER = logging.getLogger("cog2ndvi.window")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def raw_window(transform: GeoTransform, bbox: GeoBBox) -> tuple[int, int, int, int]:
    """Return the unclamped (col0, row0, col1, row1) covering the bbox."""
    col0 = math.floor((bbox.west - transform.origin_x) / transform.x_res)
    # y_res is negative: the north edge maps to the smallest row
    row0 = math.floor((bbox.north - transform.origin_y) / transform.y_res)
    col1 = math.ceil((bbox.east - transform.origin_x) / transform.x_res)
    row1 = math.ceil((bbox.south - transform.origin_y) / transform.y_res)
    return (col0, row0, col1, row1)


def output_size(window: PixelWindow, max_dim: int = DEFAULT_MAX_DIM) -> tuple[int, int]:
    """Return (out_width, out_height) capped at max_dim, aspect preserved."""
    if max_dim < 1:
        raise InvalidInputError(f"max_dim must be positive, got {max_dim}")
    scale = min(1.0, max_dim / max(window.width, window.height))
    out_width = max(1, _round_half_up(window.width * scale))
    out_height = max(1, _round_half_up(window.height * scale))
    return out_width, out_height


def plan_window(
    transform: GeoTransform,
    bbox: GeoBBox,
    width: int,
    height: int,
    *,
    max_dim: int = DEFAULT_MAX_DIM,
) -> WindowPlan | EmptyIntersection:
    """Map a native-CRS bbox to a clamped pixel window and output size."""
    if bbox.crs_id != transform.crs_id:
        raise InvalidInputError(
            f"Bounding box is in EPSG:{bbox.crs_id} but raster is EPSG:{transform.crs_id}; "
            "reproject it first.",
            stage="window",
        )
    raw = raw_window(transform, bbox)
    LOGGER.debug("Raw pixel window: col %s->%s row %s->%s", raw[0], raw[2], raw[1], raw[3])

    col0 = _clamp(raw[0], 0, width)
    row0 = _clamp(raw[1], 0, height)
    col1 = _clamp(raw[2], 0, width)
    row1 = _clamp(raw[3], 0, height)
    if col1 <= col0 or row1 <= row0:
        LOGGER.warning("AOI does not intersect this raster.", extra={"stage": "window"})
        return EmptyIntersection(
            reason="AOI does not intersect the raster extent.",
            raw_window=raw,
        )

    window = PixelWindow(col0=col0, row0=row0, col1=col1, row1=row1)
    out_width, out_height = output_size(window, max_dim)
    LOGGER.info(
        "Pixel window: col %s->%s row %s->%s (%sx%s px), output %sx%s",
        col0,
        col1,
        row0,
        row1,
        window.width,
        window.height,
        out_width,
        out_height,
        extra={"stage": "window"},
    )
    return WindowPlan(window=window, out_width=out_width, out_height=out_height)
