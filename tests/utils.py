from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
import rasterio
from rasterio.transform import Affine

UTM_ORIGIN = (500000.0, 4000000.0)


def write_raster(
    path: Path,
    data: np.ndarray,
    *,
    transform: Affine | None = None,
    crs: str | None = "EPSG:32633",
) -> Path:
    height, width = data.shape
    path.parent.mkdir(parents=True, exist_ok=True)
    profile = {
        "driver": "GTiff",
        "height": height,
        "width": width,
        "count": 1,
        "dtype": data.dtype,
    }
    if transform is not None:
        profile["transform"] = transform
    if crs is not None:
        profile["crs"] = crs
    with rasterio.open(path, "w", **profile) as dataset:
        dataset.write(data, 1)
    return path


def north_up(origin: Tuple[float, float], res: float) -> Affine:
    """Return a north-up transform with square pixels."""
    return Affine(res, 0.0, origin[0], 0.0, -res, origin[1])


def write_band(
    path: Path,
    value: int,
    *,
    size: int = 200,
    origin: Tuple[float, float] = UTM_ORIGIN,
    res: float = 30.0,
    crs: str | None = "EPSG:32633",
) -> Path:
    """Write a constant uint16 band."""
    data = np.full((size, size), value, dtype=np.uint16)
    return write_raster(path, data, transform=north_up(origin, res), crs=crs)
