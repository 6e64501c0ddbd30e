"""Command-line interface for cog2ndvi."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

import jsonschema
import numpy as np

from cog2ndvi import __version__
from cog2ndvi.bands import resolve_band_keys
from cog2ndvi.config import Settings, load_settings
from cog2ndvi.errors import Cog2NdviError
from cog2ndvi.logging_utils import LogOptions, configure_logging
from cog2ndvi.palette import DEFAULT_PALETTE, PALETTES, legend_ramp, render_index, write_png
from cog2ndvi.pipeline import NdviPipeline, build_report, inspect_source
from cog2ndvi.raster.fetch import RESAMPLING_CHOICES
from cog2ndvi.raster.models import EmptyIntersection, GeoBBox
from cog2ndvi.signing import UrlSigner

LOGGER = logging.getLogger("cog2ndvi.cli")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_EMPTY = 3


def _add_bbox_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--bbox",
        nargs=4,
        type=float,
        required=True,
        metavar=("WEST", "SOUTH", "EAST", "NORTH"),
        help="AOI bounds in WGS84 degrees.",
    )


def _add_ndvi_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the ndvi subcommand and its arguments."""
    ndvi = subparsers.add_parser("ndvi", help="Compute NDVI for an AOI from red/NIR COGs.")
    ndvi.add_argument("--red", help="Red band COG href or path.")
    ndvi.add_argument("--nir", help="Near-infrared band COG href or path.")
    ndvi.add_argument(
        "--assets",
        help="JSON file mapping asset keys to hrefs (or a STAC item with 'assets').",
    )
    _add_bbox_argument(ndvi)
    ndvi.add_argument(
        "--sign",
        action="store_true",
        help="Exchange hrefs for signed URLs before reading.",
    )
    ndvi.add_argument("--palette", choices=tuple(PALETTES), help="Color palette for --png.")
    ndvi.add_argument("--max-dim", type=int, help="Maximum output dimension in pixels.")
    ndvi.add_argument("--resampling", choices=RESAMPLING_CHOICES, help="Resampling for reads.")
    ndvi.add_argument("--png", help="Write the colored NDVI raster to this PNG path.")
    ndvi.add_argument("--legend-png", help="Write the palette legend strip to this PNG path.")
    ndvi.add_argument("--report", help="Write the JSON report here ('-' for stdout).", default="-")


def _add_window_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the window subcommand."""
    window = subparsers.add_parser(
        "window",
        help="Show raster metadata and the pixel window for an AOI (no pixel reads).",
    )
    window.add_argument("--url", required=True, help="COG href or path.")
    _add_bbox_argument(window)
    window.add_argument("--max-dim", type=int, help="Maximum output dimension in pixels.")


def _add_legend_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the legend subcommand."""
    legend = subparsers.add_parser("legend", help="Render a palette gradient strip.")
    legend.add_argument("--palette", default=DEFAULT_PALETTE, help="Palette name.")
    legend.add_argument("--width", type=int, default=256, help="Strip width in pixels.")
    legend.add_argument("--height", type=int, default=16, help="Strip height in pixels.")
    legend.add_argument("--png", required=True, help="Output PNG path.")


def _add_bands_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the bands subcommand."""
    bands = subparsers.add_parser("bands", help="Resolve red/NIR keys from asset keys.")
    bands.add_argument("keys", nargs="+", help="Asset keys of a scene.")


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Overlay CLI flags on file-based settings."""
    config_value = getattr(args, "config", None)
    settings = load_settings(Path(config_value) if config_value else None)
    return settings.with_overrides(
        max_dim=getattr(args, "max_dim", None),
        resampling=getattr(args, "resampling", None),
        palette=getattr(args, "palette", None),
    )


def _load_assets(path: Path) -> dict[str, str]:
    """Load an asset key -> href mapping from JSON."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Assets file must be a JSON object.")
    raw = data.get("assets", data)
    if not isinstance(raw, dict):
        raise ValueError("Assets file must map keys to hrefs.")
    assets: dict[str, str] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            assets[key] = value
        elif isinstance(value, dict) and isinstance(value.get("href"), str):
            assets[key] = value["href"]
    return assets


def _emit_report(report: dict[str, Any], destination: str) -> None:
    text = json.dumps(report, indent=2)
    if destination in ("-", ""):
        print(text)
        return
    output_path = Path(destination)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(text, encoding="utf-8")
    LOGGER.info("Report written to %s", output_path)


def _run_ndvi(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    if not args.assets and not (args.red and args.nir):
        parser.error("ndvi requires --red and --nir, or --assets")
    settings = _settings_from_args(args)
    bbox = GeoBBox.from_bounds(tuple(args.bbox))

    signer = None
    if args.sign:
        signer = UrlSigner(
            sign_url=settings.sign_url,
            retry=settings.retry,
            timeout=settings.http_timeout,
        )
    try:
        pipeline = NdviPipeline(settings, signer=signer)
        if args.assets:
            outcome = pipeline.run_assets(_load_assets(Path(args.assets)), bbox)
        else:
            outcome = pipeline.run(args.red, args.nir, bbox)
    finally:
        if signer is not None:
            signer.close()

    _emit_report(build_report(outcome, bbox), args.report)
    if isinstance(outcome, EmptyIntersection):
        LOGGER.warning("No overlap: %s Try a different area or scene.", outcome.reason)
        return EXIT_EMPTY
    for warning in outcome.warnings:
        LOGGER.warning("%s", warning)
    if args.png:
        write_png(Path(args.png), render_index(outcome.result, settings.palette))
        LOGGER.info("NDVI image written to %s", args.png)
    if args.legend_png:
        _write_legend(Path(args.legend_png), settings.palette, 256, 16)
    return EXIT_OK


def _run_window(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    bbox = GeoBBox.from_bounds(tuple(args.bbox))
    metadata, plan = inspect_source(args.url, bbox, settings)
    payload: dict[str, Any] = {
        "crs_id": metadata.transform.crs_id,
        "crs_source": metadata.crs_source,
        "origin": [metadata.transform.origin_x, metadata.transform.origin_y],
        "resolution": [metadata.transform.x_res, metadata.transform.y_res],
        "size": [metadata.width, metadata.height],
        "warnings": list(metadata.warnings),
    }
    if isinstance(plan, EmptyIntersection):
        payload["window"] = None
        print(json.dumps(payload, indent=2))
        LOGGER.warning("No overlap: %s", plan.reason)
        return EXIT_EMPTY
    payload["window"] = plan.window.as_list()
    payload["output_size"] = [plan.out_width, plan.out_height]
    print(json.dumps(payload, indent=2))
    return EXIT_OK


def _write_legend(path: Path, palette: str, width: int, height: int) -> None:
    ramp = legend_ramp(palette, width)
    strip = np.repeat(ramp[np.newaxis, :, :], max(1, height), axis=0)
    write_png(path, strip)
    LOGGER.info("Legend written to %s", path)


def main(argv: list[str] | None = None) -> int:
    """Entry point for the cog2ndvi CLI."""
    parser = argparse.ArgumentParser(
        prog="cog2ndvi",
        description="Windowed COG reads and NDVI rendering for an AOI",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument("--quiet", action="store_true", help="Only log warnings and errors.")
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON on stderr.")
    parser.add_argument("--log-file", help="Optional path for JSON log output.")
    parser.add_argument("--config", help="Path to a JSON settings file.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_ndvi_parser(subparsers)
    _add_window_parser(subparsers)
    _add_legend_parser(subparsers)
    _add_bands_parser(subparsers)
    subparsers.add_parser("palettes", help="List available palettes.")
    subparsers.add_parser("version", help="Print the version.")

    args = parser.parse_args(argv)
    log_file_value = getattr(args, "log_file", None)
    configure_logging(
        LogOptions(
            verbose=args.verbose or 0,
            quiet=bool(args.quiet),
            log_file=Path(log_file_value) if log_file_value else None,
            json_console=bool(args.log_json),
        )
    )

    if args.command == "version":
        print(__version__)
        return EXIT_OK
    if args.command == "palettes":
        for name in PALETTES:
            marker = " (default)" if name == DEFAULT_PALETTE else ""
            print(f"{name}{marker}")
        return EXIT_OK
    if args.command == "legend":
        if args.width < 1:
            parser.error("--width must be positive")
        _write_legend(Path(args.png), args.palette, args.width, args.height)
        return EXIT_OK

    try:
        if args.command == "bands":
            keys = resolve_band_keys(args.keys)
            print(json.dumps({"red": keys.red, "nir": keys.nir}))
            return EXIT_OK
        if args.command == "window":
            return _run_window(args)
        if args.command == "ndvi":
            return _run_ndvi(args, parser)
    except Cog2NdviError as exc:
        LOGGER.error("%s failed: %s", exc.stage, exc, extra={"stage": exc.stage})
        return EXIT_ERROR
    except (OSError, ValueError, jsonschema.ValidationError) as exc:
        LOGGER.error("Invalid input: %s", exc)
        return EXIT_ERROR

    parser.error("Unknown command")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
