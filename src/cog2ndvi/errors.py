"""Error taxonomy for cog2ndvi stages."""

from __future__ import annotations


class Cog2NdviError(Exception):
    """Base error carrying the pipeline stage that failed."""

    default_stage = "unknown"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        super().__init__(message)
        self.stage = stage or self.default_stage


class MetadataError(Cog2NdviError):
    """Raster header is unreadable or lacks a usable geotransform."""

    default_stage = "metadata"


class ProjectionError(Cog2NdviError):
    """Coordinate transform is undefined for the requested CRS pair."""

    default_stage = "projection"


class FetchError(Cog2NdviError):
    """Network failure while signing a URL or reading a window."""

    default_stage = "fetch"

    def __init__(
        self,
        message: str,
        *,
        stage: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message, stage=stage)
        self.status_code = status_code


class RateLimitError(FetchError):
    """Upstream kept rate limiting after all retry attempts."""


class DecodeError(Cog2NdviError):
    """Tile data could not be decoded."""

    default_stage = "decode"


class InvalidInputError(Cog2NdviError):
    """Degenerate geometry or window dimensions."""

    default_stage = "input"


class AmbiguousBandsError(Cog2NdviError):
    """Red/NIR assets could not be told apart in a scene's asset keys."""

    default_stage = "bands"

    def __init__(self, message: str, *, asset_keys: tuple[str, ...] = ()) -> None:
        super().__init__(message)
        self.asset_keys = asset_keys
