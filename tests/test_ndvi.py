from __future__ import annotations

import numpy as np
import pytest

from cog2ndvi.config import Calibration
from cog2ndvi.errors import InvalidInputError
from cog2ndvi.ndvi import calibrate, compute_ndvi
from cog2ndvi.raster.models import BandWindow

IDENTITY = Calibration(scale=1.0, offset=0.0)


def _band(value: float, width: int = 4, height: int = 4) -> BandWindow:
    return BandWindow(np.full((height, width), value, dtype=np.float64), width, height)


def test_constant_bands_reference_scenario() -> None:
    result = compute_ndvi(_band(0.2), _band(0.5), calibration=IDENTITY)

    assert (result.width, result.height) == (4, 4)
    expected = (0.5 - 0.2) / 0.7
    np.testing.assert_allclose(result.values, expected)
    assert result.stats.mean == pytest.approx(0.4286, abs=1e-4)
    assert result.stats.min == pytest.approx(expected)
    assert result.stats.max == pytest.approx(expected)
    assert result.stats.coverage_pct == 100.0
    assert result.stats.count == 16


def test_equal_reflectance_is_zero_not_nodata() -> None:
    result = compute_ndvi(_band(0.3), _band(0.3), calibration=IDENTITY)
    assert not np.isnan(result.values).any()
    assert (result.values == 0.0).all()
    assert result.stats.coverage_pct == 0.0


def test_zero_reflectance_is_nodata_with_zero_stats() -> None:
    result = compute_ndvi(_band(0.0), _band(0.0), calibration=IDENTITY)
    assert np.isnan(result.values).all()
    stats = result.stats
    assert (stats.min, stats.mean, stats.max, stats.coverage_pct, stats.count) == (0, 0, 0, 0, 0)


def test_default_calibration_clamps_reflectance() -> None:
    raw = np.array([[0, 7273, 100000]], dtype=np.float64)
    reflect = calibrate(raw, Calibration())
    assert reflect[0, 0] == 0.0
    assert reflect[0, 1] == pytest.approx(0.0000275 * 7273 - 0.2)
    assert reflect[0, 2] == 1.0


def test_values_bounded_and_stats_ordered() -> None:
    rng = np.random.default_rng(42)
    red = BandWindow(rng.integers(0, 65535, size=(32, 48)).astype(np.uint16), 48, 32)
    nir = BandWindow(rng.integers(0, 65535, size=(32, 48)).astype(np.uint16), 48, 32)

    result = compute_ndvi(red, nir)

    valid = result.values[~np.isnan(result.values)]
    assert valid.size == result.stats.count
    assert (valid >= -1.0).all() and (valid <= 1.0).all()
    assert result.stats.min <= result.stats.mean <= result.stats.max


@pytest.mark.parametrize("size", [3, 5])
@pytest.mark.parametrize("red_value", [0.01, 0.03, 0.07, 0.11])
def test_constant_field_mean_within_range(size: int, red_value: float) -> None:
    result = compute_ndvi(
        _band(red_value, width=size, height=1),
        _band(0.5, width=size, height=1),
        calibration=IDENTITY,
    )

    stats = result.stats
    assert stats.count == size
    assert stats.min <= stats.mean <= stats.max
    assert stats.mean == stats.min == stats.max


def test_mismatched_windows_trim_to_common_extent() -> None:
    red = BandWindow(np.full((4, 5), 0.2), 5, 4)
    nir = BandWindow(np.full((5, 4), 0.6), 4, 5)

    result = compute_ndvi(red, nir, calibration=IDENTITY)

    assert (result.width, result.height) == (4, 4)
    assert result.values.shape == (4, 4)
    assert result.stats.count == 16


def test_partial_nodata_excluded_from_stats() -> None:
    red = BandWindow(np.array([[0.0, 0.2], [0.1, 0.4]]), 2, 2)
    nir = BandWindow(np.array([[0.0, 0.6], [0.1, 0.2]]), 2, 2)

    result = compute_ndvi(red, nir, calibration=IDENTITY)

    assert np.isnan(result.values[0, 0])
    assert result.stats.count == 3
    assert result.stats.coverage_pct == pytest.approx(100.0 / 3)
    assert result.stats.max == pytest.approx(0.5)
    assert result.stats.min == pytest.approx(-1.0 / 3)


def test_zero_size_window_rejected() -> None:
    empty = BandWindow(np.zeros((0, 3)), 3, 0)
    with pytest.raises(InvalidInputError) as excinfo:
        compute_ndvi(empty, _band(0.5, 3, 3))
    assert excinfo.value.stage == "index"
