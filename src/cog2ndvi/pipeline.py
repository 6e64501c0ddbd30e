"""Ordered NDVI pipeline: sign, inspect, window, read, compute."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, Mapping

from cog2ndvi.bands import resolve_band_keys
from cog2ndvi.config import Settings
from cog2ndvi.contracts import SCHEMA_VERSION, validate_ndvi_report
from cog2ndvi.ndvi import compute_ndvi
from cog2ndvi.raster.crs import reproject_bbox
from cog2ndvi.raster.fetch import read_window
from cog2ndvi.raster.info import open_raster, read_metadata
from cog2ndvi.raster.models import (
    BandWindow,
    EmptyIntersection,
    GeoBBox,
    IndexResult,
    RasterMetadata,
    WindowPlan,
)
from cog2ndvi.raster.window import plan_window
from cog2ndvi.signing import UrlSigner

LOGGER = logging.getLogger("cog2ndvi.pipeline")

BAND_LABELS = ("red", "nir")


@dataclass(frozen=True)
class BandRead:
    """Window read from one band source."""

    label: str
    metadata: RasterMetadata
    plan: WindowPlan
    window: BandWindow


@dataclass(frozen=True)
class NdviRun:
    """Completed NDVI computation for one AOI and scene."""

    bbox: GeoBBox
    red: BandRead
    nir: BandRead
    result: IndexResult
    warnings: tuple[str, ...] = ()


def inspect_source(
    href: str,
    bbox: GeoBBox,
    settings: Settings | None = None,
) -> tuple[RasterMetadata, WindowPlan | EmptyIntersection]:
    """Return metadata and the window plan for one source without reading pixels."""
    settings = settings or Settings()
    with open_raster(href, retry=settings.retry) as dataset:
        metadata = read_metadata(dataset, fallback_epsg=settings.fallback_epsg)
    native = reproject_bbox(bbox, metadata.transform.crs_id)
    plan = plan_window(
        metadata.transform,
        native,
        metadata.width,
        metadata.height,
        max_dim=settings.max_dim,
    )
    return metadata, plan


class NdviPipeline:
    """Run the NDVI stages strictly in order for one (scene, AOI) pair.

    The signer and both band reads are driven from a single loop; there is
    no entry point that issues them concurrently.
    """

    def __init__(self, settings: Settings | None = None, *, signer: UrlSigner | None = None) -> None:
        self.settings = settings or Settings()
        self.signer = signer

    def _sign_all(self, hrefs: tuple[str, ...]) -> tuple[str, ...]:
        if self.signer is None:
            return hrefs
        signed = []
        for label, href in zip(BAND_LABELS, hrefs):
            LOGGER.info("Signing %s band URL", label, extra={"stage": "sign"})
            signed.append(self.signer.sign(href))
        return tuple(signed)

    def _read_band(self, label: str, href: str, bbox: GeoBBox) -> BandRead | EmptyIntersection:
        settings = self.settings
        with open_raster(href, retry=settings.retry) as dataset:
            metadata = read_metadata(dataset, fallback_epsg=settings.fallback_epsg)
            native = reproject_bbox(bbox, metadata.transform.crs_id)
            plan = plan_window(
                metadata.transform,
                native,
                metadata.width,
                metadata.height,
                max_dim=settings.max_dim,
            )
            if isinstance(plan, EmptyIntersection):
                return dataclasses.replace(plan, reason=f"{label} band: {plan.reason}")
            LOGGER.info("Downloading %s band window", label, extra={"stage": "fetch"})
            window = read_window(dataset, plan, resampling=settings.resampling)
        return BandRead(label=label, metadata=metadata, plan=plan, window=window)

    def run(self, red_href: str, nir_href: str, bbox: GeoBBox) -> NdviRun | EmptyIntersection:
        """Compute NDVI for the AOI, or report that it misses the scene."""
        hrefs = self._sign_all((red_href, nir_href))
        reads: dict[str, BandRead] = {}
        for label, href in zip(BAND_LABELS, hrefs):
            outcome = self._read_band(label, href, bbox)
            if isinstance(outcome, EmptyIntersection):
                LOGGER.warning("%s", outcome.reason, extra={"stage": "window"})
                return outcome
            reads[label] = outcome

        red, nir = reads["red"], reads["nir"]
        result = compute_ndvi(
            red.window,
            nir.window,
            calibration=self.settings.calibration,
            vegetation_threshold=self.settings.vegetation_threshold,
        )
        warnings = tuple(dict.fromkeys(red.metadata.warnings + nir.metadata.warnings))
        return NdviRun(bbox=bbox, red=red, nir=nir, result=result, warnings=warnings)

    def run_assets(self, assets: Mapping[str, str], bbox: GeoBBox) -> NdviRun | EmptyIntersection:
        """Resolve red/NIR hrefs from an asset key -> href mapping and run."""
        keys = resolve_band_keys(assets.keys())
        return self.run(assets[keys.red], assets[keys.nir], bbox)


def build_report(outcome: NdviRun | EmptyIntersection, bbox: GeoBBox) -> dict[str, Any]:
    """Return a schema-validated JSON-ready summary of a pipeline outcome."""
    report: dict[str, Any] = {
        "schema_version": SCHEMA_VERSION,
        "bbox": list(bbox.as_bounds()),
    }
    if isinstance(outcome, EmptyIntersection):
        report.update({"status": "empty", "reason": outcome.reason, "warnings": []})
    else:
        plan = outcome.red.plan
        report.update(
            {
                "status": "ok",
                "crs_id": outcome.red.metadata.transform.crs_id,
                "window": plan.window.as_list(),
                "size": [outcome.result.width, outcome.result.height],
                "stats": outcome.result.stats.as_dict(),
                "warnings": list(outcome.warnings),
            }
        )
    validate_ndvi_report(report)
    return report
