"""Windowed, resampled band reads."""

from __future__ import annotations

import logging
import re
from typing import Any

from rasterio._err import CPLE_HttpResponseError
from rasterio.enums import Resampling
from rasterio.errors import RasterioError, RasterioIOError
from rasterio.windows import Window

from cog2ndvi.errors import DecodeError, FetchError, InvalidInputError
from cog2ndvi.raster.models import BandWindow, WindowPlan

LOGGER = logging.getLogger("cog2ndvi.fetch")

RESAMPLING_CHOICES = ("nearest", "bilinear", "cubic", "average")
_TRANSPORT_MARKERS = ("http", "curl", "timed out", "timeout", "connection", "ssl")
# dataset paths such as /vsicurl/https://host/B4.TIF
_PATH_PATTERN = re.compile(r"\S*(?:/vsi\w+/|://)\S*")


def resampling_from_name(name: str) -> Resampling:
    """Return the rasterio resampling enum for a method name."""
    if name not in RESAMPLING_CHOICES:
        raise InvalidInputError(f"Unsupported resampling method: {name}", stage="fetch")
    return Resampling[name]


def _is_transport_failure(exc: Exception) -> bool:
    """Return True when a read failed in GDAL's HTTP layer rather than in decoding."""
    if isinstance(exc.__cause__, CPLE_HttpResponseError):
        return True
    text = _PATH_PATTERN.sub(" ", str(exc)).lower()
    return any(marker in text for marker in _TRANSPORT_MARKERS)


def read_window(
    dataset: Any,
    plan: WindowPlan,
    *,
    band: int = 1,
    resampling: str = "nearest",
) -> BandWindow:
    """Read one band's pixel window at the planned output size."""
    window = plan.window
    rio_window = Window(
        col_off=window.col0,
        row_off=window.row0,
        width=window.width,
        height=window.height,
    )
    try:
        data = dataset.read(
            band,
            window=rio_window,
            out_shape=(plan.out_height, plan.out_width),
            resampling=resampling_from_name(resampling),
        )
    except RasterioIOError as exc:
        if _is_transport_failure(exc):
            raise FetchError(f"Windowed read failed for band {band}: {exc}") from exc
        raise DecodeError(f"Could not decode band {band} tile data: {exc}") from exc
    except RasterioError as exc:
        raise DecodeError(f"Could not decode band {band} tile data: {exc}") from exc

    LOGGER.debug(
        "Read band %s window %s -> %sx%s",
        band,
        window.as_list(),
        plan.out_width,
        plan.out_height,
        extra={"stage": "fetch"},
    )
    return BandWindow(samples=data, width=plan.out_width, height=plan.out_height)
