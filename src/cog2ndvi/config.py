"""Runtime configuration for windowed reads, calibration and signing."""

from __future__ import annotations

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from cog2ndvi.contracts import validate_settings

ENV_CONFIG_PATH = "COG2NDVI_CONFIG"

DEFAULT_MAX_DIM = 1024
# Landsat Collection 2 Level-2 surface reflectance
LANDSAT_C2L2_SCALE = 0.0000275
LANDSAT_C2L2_OFFSET = -0.2
DEFAULT_VEGETATION_THRESHOLD = 0.3
# UTM zone 1N
FALLBACK_EPSG = 32601
DEFAULT_SIGN_URL = "https://planetarycomputer.microsoft.com/api/sas/v1/sign"


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff applied to rate-limited requests."""

    max_attempts: int = 4
    initial_delay: float = 0.8
    backoff_factor: float = 2.0

    def delays(self) -> list[float]:
        """Return the sleep before each retry (one fewer than attempts)."""
        return [
            self.initial_delay * self.backoff_factor**index
            for index in range(max(0, self.max_attempts - 1))
        ]


@dataclass(frozen=True)
class Calibration:
    """Linear scale/offset from stored samples to surface reflectance."""

    scale: float = LANDSAT_C2L2_SCALE
    offset: float = LANDSAT_C2L2_OFFSET


@dataclass(frozen=True)
class Settings:
    """Resolved configuration values."""

    max_dim: int = DEFAULT_MAX_DIM
    scale: float = LANDSAT_C2L2_SCALE
    offset: float = LANDSAT_C2L2_OFFSET
    vegetation_threshold: float = DEFAULT_VEGETATION_THRESHOLD
    fallback_epsg: int = FALLBACK_EPSG
    palette: str = "rdylgn"
    resampling: str = "nearest"
    sign_url: str = DEFAULT_SIGN_URL
    max_attempts: int = 4
    initial_delay: float = 0.8
    backoff_factor: float = 2.0
    http_timeout: float = 30.0

    @property
    def calibration(self) -> Calibration:
        return Calibration(scale=self.scale, offset=self.offset)

    @property
    def retry(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            initial_delay=self.initial_delay,
            backoff_factor=self.backoff_factor,
        )

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with non-None overrides applied."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **values)


def _default_candidate_paths() -> list[Path]:
    """Return default settings locations in priority order."""
    return [Path.cwd() / "cog2ndvi.json"]


def _load_candidate(candidate: Path) -> dict[str, Any] | None:
    """Load and validate a settings payload from a single path."""
    if not candidate.exists():
        return None
    data = json.loads(candidate.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Settings file must be a JSON object: {candidate}")
    validate_settings(data)
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from JSON config, falling back to defaults."""
    payload: dict[str, Any] | None = None
    if path:
        payload = _load_candidate(path)
        if payload is None:
            raise FileNotFoundError(f"Settings file not found: {path}")
    else:
        env_path = os.environ.get(ENV_CONFIG_PATH)
        if env_path:
            payload = _load_candidate(Path(env_path))
        else:
            for candidate in _default_candidate_paths():
                payload = _load_candidate(candidate)
                if payload is not None:
                    break
    if not payload:
        return Settings()
    return Settings().with_overrides(**payload)
