"""Raster header inspection and COG open helpers."""

from __future__ import annotations

import logging
import math
from contextlib import contextmanager
from typing import Any, Iterator

import rasterio
from rasterio.errors import CRSError, RasterioIOError

from cog2ndvi.config import FALLBACK_EPSG, RetryPolicy
from cog2ndvi.errors import MetadataError
from cog2ndvi.raster.models import GeoTransform, RasterMetadata

LOGGER = logging.getLogger("cog2ndvi.info")


def gdal_env_options(retry: RetryPolicy) -> dict[str, Any]:
    """Return GDAL options for header-only opens and ranged COG reads."""
    return {
        "GDAL_DISABLE_READDIR_ON_OPEN": "EMPTY_DIR",
        "CPL_VSIL_CURL_ALLOWED_EXTENSIONS": ".tif,.TIF,.tiff",
        "GDAL_HTTP_MERGE_CONSECUTIVE_RANGES": "YES",
        "GDAL_HTTP_MULTIPLEX": "YES",
        "GDAL_HTTP_MAX_RETRY": max(0, retry.max_attempts - 1),
        "GDAL_HTTP_RETRY_DELAY": retry.initial_delay,
    }


@contextmanager
def open_raster(href: str, *, retry: RetryPolicy | None = None) -> Iterator[Any]:
    """Open a local path or remote COG URL without transferring pixel data."""
    with rasterio.Env(**gdal_env_options(retry or RetryPolicy())):
        try:
            dataset = rasterio.open(href)
        except RasterioIOError as exc:
            raise MetadataError(f"Unable to read raster header from {href}: {exc}") from exc
        with dataset:
            yield dataset


def _read_epsg(dataset: Any) -> int | None:
    try:
        crs = dataset.crs
        if not crs:
            return None
        epsg = crs.to_epsg()
    except CRSError:
        return None
    if epsg is None or epsg <= 0:
        return None
    return int(epsg)


def read_metadata(dataset: Any, *, fallback_epsg: int = FALLBACK_EPSG) -> RasterMetadata:
    """Decode geotransform, dimensions and CRS code from an opened raster."""
    affine = dataset.transform
    origin_x, origin_y = float(affine.c), float(affine.f)
    x_res, y_res = float(affine.a), float(affine.e)
    if not all(math.isfinite(value) for value in (origin_x, origin_y, x_res, y_res)):
        raise MetadataError("Raster geotransform is not finite.")
    if affine.b != 0 or affine.d != 0:
        raise MetadataError("Rotated or sheared geotransforms are not supported.")
    if x_res <= 0 or y_res >= 0:
        raise MetadataError(
            f"Raster is not north-up georeferenced (xRes={x_res}, yRes={y_res})."
        )

    warnings: list[str] = []
    epsg = _read_epsg(dataset)
    crs_source = "geokeys"
    if epsg is None:
        epsg = fallback_epsg
        crs_source = "fallback"
        message = f"Raster CRS missing or unparseable; assuming EPSG:{fallback_epsg} (guess)."
        warnings.append(message)
        LOGGER.warning(message, extra={"stage": "metadata"})

    LOGGER.info(
        "EPSG:%s | origin:(%.0f,%.0f) | res:(%.1f,%.1f) | size:%sx%s",
        epsg,
        origin_x,
        origin_y,
        x_res,
        y_res,
        dataset.width,
        dataset.height,
        extra={"stage": "metadata"},
    )
    return RasterMetadata(
        transform=GeoTransform(
            origin_x=origin_x,
            origin_y=origin_y,
            x_res=x_res,
            y_res=y_res,
            crs_id=epsg,
        ),
        width=int(dataset.width),
        height=int(dataset.height),
        crs_source=crs_source,
        warnings=tuple(warnings),
    )
