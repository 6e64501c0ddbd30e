from __future__ import annotations

import json
from pathlib import Path

import jsonschema
import pytest

from cog2ndvi.config import (
    ENV_CONFIG_PATH,
    LANDSAT_C2L2_OFFSET,
    LANDSAT_C2L2_SCALE,
    Calibration,
    RetryPolicy,
    Settings,
    load_settings,
)


def test_defaults_when_no_config() -> None:
    settings = load_settings()
    assert settings == Settings()
    assert settings.calibration == Calibration(LANDSAT_C2L2_SCALE, LANDSAT_C2L2_OFFSET)
    assert settings.retry == RetryPolicy()
    assert settings.max_dim == 1024
    assert settings.fallback_epsg == 32601


def test_load_settings_from_file(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_text(
        json.dumps({"max_dim": 512, "palette": "viridis", "max_attempts": 2}),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.max_dim == 512
    assert settings.palette == "viridis"
    assert settings.retry.max_attempts == 2
    assert settings.scale == LANDSAT_C2L2_SCALE


def test_load_settings_from_env(tmp_path: Path, monkeypatch) -> None:
    path = tmp_path / "env.json"
    path.write_text(json.dumps({"vegetation_threshold": 0.4}), encoding="utf-8")
    monkeypatch.setenv(ENV_CONFIG_PATH, str(path))

    assert load_settings().vegetation_threshold == 0.4


def test_load_settings_from_working_directory(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv(ENV_CONFIG_PATH, raising=False)
    monkeypatch.chdir(tmp_path)
    (tmp_path / "cog2ndvi.json").write_text(json.dumps({"resampling": "average"}), encoding="utf-8")

    assert load_settings().resampling == "average"


def test_load_settings_rejects_unknown_keys(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"max_dimension": 10}), encoding="utf-8")
    with pytest.raises(jsonschema.ValidationError):
        load_settings(path)


def test_load_settings_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path)


def test_explicit_missing_path_raises(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "missing.json")


def test_with_overrides_ignores_none() -> None:
    settings = Settings().with_overrides(max_dim=256, palette=None)
    assert settings.max_dim == 256
    assert settings.palette == "rdylgn"
