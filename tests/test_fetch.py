from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from rasterio._err import CPLE_HttpResponseError
from rasterio.errors import RasterioIOError

from cog2ndvi.errors import DecodeError, FetchError, InvalidInputError
from cog2ndvi.raster.fetch import read_window, resampling_from_name
from cog2ndvi.raster.info import open_raster
from cog2ndvi.raster.models import BandWindow, PixelWindow, WindowPlan
from tests.utils import UTM_ORIGIN, north_up, write_raster


def _gradient(size: int) -> np.ndarray:
    rows, cols = np.indices((size, size))
    return (rows * 1000 + cols).astype(np.int32)


def test_read_window_exact_pixels(tmp_path: Path) -> None:
    data = _gradient(200)
    path = write_raster(tmp_path / "band.tif", data, transform=north_up(UTM_ORIGIN, 30.0))
    plan = WindowPlan(window=PixelWindow(10, 20, 40, 60), out_width=30, out_height=40)

    with open_raster(str(path)) as dataset:
        band = read_window(dataset, plan)

    assert (band.width, band.height) == (30, 40)
    assert band.samples.shape == (40, 30)
    np.testing.assert_array_equal(band.samples, data[20:60, 10:40])


def test_read_window_downsamples_to_output_size(tmp_path: Path) -> None:
    data = _gradient(200)
    path = write_raster(tmp_path / "band.tif", data, transform=north_up(UTM_ORIGIN, 30.0))
    plan = WindowPlan(window=PixelWindow(0, 0, 100, 100), out_width=50, out_height=25)

    with open_raster(str(path)) as dataset:
        band = read_window(dataset, plan)

    assert band.samples.shape == (25, 50)
    assert band.samples.size == band.width * band.height
    assert band.samples.max() < data[:100, :100].max() + 1


class _FailingDataset:
    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause

    def read(self, *_args, **_kwargs):
        raise RasterioIOError(self.message) from self.cause


def test_read_window_transport_failure_is_fetch_error() -> None:
    plan = WindowPlan(window=PixelWindow(0, 0, 4, 4), out_width=4, out_height=4)
    dataset = _FailingDataset("HTTP response code: 503")
    with pytest.raises(FetchError):
        read_window(dataset, plan)


def test_read_window_corrupt_tile_is_decode_error() -> None:
    plan = WindowPlan(window=PixelWindow(0, 0, 4, 4), out_width=4, out_height=4)
    dataset = _FailingDataset("Read or write failed. TIFFReadEncodedTile() failed.")
    with pytest.raises(DecodeError) as excinfo:
        read_window(dataset, plan)
    assert excinfo.value.stage == "decode"


def test_read_window_remote_corrupt_tile_is_decode_error() -> None:
    plan = WindowPlan(window=PixelWindow(0, 0, 4, 4), out_width=4, out_height=4)
    dataset = _FailingDataset(
        "Read or write failed. /vsicurl/https://storage.example.test/LC09_SR_B4.TIF, band 1: "
        "IReadBlock failed at X offset 0, Y offset 0: TIFFReadEncodedTile() failed."
    )
    with pytest.raises(DecodeError):
        read_window(dataset, plan)


def test_read_window_http_layer_cause_is_fetch_error() -> None:
    plan = WindowPlan(window=PixelWindow(0, 0, 4, 4), out_width=4, out_height=4)
    cause = CPLE_HttpResponseError(1, 11, "Range request rejected")
    dataset = _FailingDataset("Read or write failed. Range request rejected", cause)
    with pytest.raises(FetchError) as excinfo:
        read_window(dataset, plan)
    assert excinfo.value.stage == "fetch"


def test_resampling_from_name_rejects_unknown() -> None:
    with pytest.raises(InvalidInputError) as excinfo:
        resampling_from_name("lanczos-ish")
    assert excinfo.value.stage == "fetch"


def test_band_window_size_invariant() -> None:
    with pytest.raises(InvalidInputError):
        BandWindow(samples=np.zeros((3, 3)), width=4, height=4)
    flat = BandWindow(samples=np.arange(6), width=3, height=2)
    assert flat.samples.shape == (2, 3)
