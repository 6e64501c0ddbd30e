"""Red/NIR asset key resolution for catalog scenes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Sequence

from cog2ndvi.errors import AmbiguousBandsError

LOGGER = logging.getLogger("cog2ndvi.bands")

RED_PREFERENCES: tuple[str, ...] = ("red", "SR_B4", "sr_b4", "SR_B3", "sr_b3", "B4", "B3")
NIR_PREFERENCES: tuple[str, ...] = (
    "nir08",
    "nir",
    "SR_B5",
    "sr_b5",
    "SR_B4",
    "sr_b4",
    "B5",
    "B4",
)
NIR_TIEBREAK_MARKERS: tuple[str, ...] = ("nir", "b5", "b4")


@dataclass(frozen=True)
class BandKeys:
    """Resolved asset keys for the two index bands."""

    red: str
    nir: str


def _first_present(keys: set[str], candidates: Sequence[str]) -> str | None:
    for candidate in candidates:
        if candidate in keys:
            return candidate
    return None


def resolve_band_keys(asset_keys: Iterable[str]) -> BandKeys:
    """Pick the red and NIR asset keys from a scene's asset key set.

    Preference lists are tried in order. When both picks land on the same
    key, the NIR key is re-chosen as the first key in sorted order, other
    than the red key, whose lowercase name contains one of
    ``NIR_TIEBREAK_MARKERS``.
    """
    keys = set(asset_keys)
    ordered = tuple(sorted(keys))
    red = _first_present(keys, RED_PREFERENCES)
    nir = _first_present(keys, NIR_PREFERENCES)

    if nir is not None and nir == red:
        alternates = [
            key
            for key in ordered
            if key != red and any(marker in key.lower() for marker in NIR_TIEBREAK_MARKERS)
        ]
        nir = alternates[0] if alternates else None

    if red is None or nir is None:
        missing = [label for label, key in (("red", red), ("nir", nir)) if key is None]
        raise AmbiguousBandsError(
            f"Could not resolve {', '.join(missing)} asset(s). Available: {', '.join(ordered)}",
            asset_keys=ordered,
        )

    LOGGER.info('RED="%s" NIR="%s"', red, nir, extra={"stage": "bands"})
    return BandKeys(red=red, nir=nir)
