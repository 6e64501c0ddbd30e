"""CRS normalization and AOI reprojection helpers."""

from __future__ import annotations

import dataclasses
import logging
import math

from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError, ProjError

from cog2ndvi.errors import ProjectionError
from cog2ndvi.raster.models import GeoBBox

LOGGER = logging.getLogger("cog2ndvi.crs")


def normalize_crs(value: str | int | CRS) -> CRS:
    """Normalize CRS input (EPSG code, string, CRS) into a pyproj CRS."""
    try:
        if isinstance(value, int):
            return CRS.from_epsg(value)
        return CRS.from_user_input(value)
    except CRSError as exc:
        raise ProjectionError(f"Unknown coordinate reference system: {value}") from exc


def is_geographic(crs_id: int) -> bool:
    """Return True when the EPSG code names a geographic (lon/lat) CRS."""
    return bool(normalize_crs(crs_id).is_geographic)


def transformer(src: str | int | CRS, dst: str | int | CRS) -> Transformer:
    """Return a transformer that respects lon/lat axis order."""
    try:
        return Transformer.from_crs(normalize_crs(src), normalize_crs(dst), always_xy=True)
    except ProjError as exc:
        raise ProjectionError(f"No transform defined from {src} to {dst}") from exc


def reproject_bbox(bbox: GeoBBox, target_crs_id: int) -> GeoBBox:
    """Return the axis-aligned native-CRS bounds of a geographic bbox.

    All four corners are projected because a lon/lat rectangle is not a
    rectangle in a projected CRS; the result may over-cover the true
    footprint but never clips it.
    """
    if bbox.crs_id == target_crs_id:
        return bbox
    if is_geographic(target_crs_id):
        return dataclasses.replace(bbox, crs_id=target_crs_id)

    tx = transformer(bbox.crs_id, target_crs_id)
    xs = [bbox.west, bbox.east, bbox.east, bbox.west]
    ys = [bbox.south, bbox.south, bbox.north, bbox.north]
    try:
        out_xs, out_ys = tx.transform(xs, ys, errcheck=True)
    except ProjError as exc:
        raise ProjectionError(
            f"Cannot project AOI {bbox.as_bounds()} into EPSG:{target_crs_id}"
        ) from exc
    if not all(math.isfinite(value) for value in (*out_xs, *out_ys)):
        raise ProjectionError(
            f"Projection of AOI {bbox.as_bounds()} into EPSG:{target_crs_id} is undefined"
        )

    projected = GeoBBox(
        west=min(out_xs),
        south=min(out_ys),
        east=max(out_xs),
        north=max(out_ys),
        crs_id=target_crs_id,
    )
    LOGGER.info(
        "AOI in EPSG:%s: xmin=%.0f ymin=%.0f xmax=%.0f ymax=%.0f",
        target_crs_id,
        projected.west,
        projected.south,
        projected.east,
        projected.north,
        extra={"stage": "projection"},
    )
    return projected
