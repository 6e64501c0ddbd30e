"""Schema validation helpers for settings files and run reports."""

from __future__ import annotations

import json
from importlib import resources
from typing import Any, Mapping

import jsonschema

SCHEMA_VERSION = "1.0"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a JSON schema bundled in the package."""
    with resources.files("cog2ndvi.schemas").joinpath(name).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def validate_settings(payload: Mapping[str, Any]) -> None:
    """Validate a settings file payload against the schema."""
    schema = _load_schema("settings.schema.json")
    jsonschema.validate(payload, schema)


def validate_ndvi_report(report: Mapping[str, Any]) -> None:
    """Validate an NDVI run report against the schema."""
    schema = _load_schema("ndvi_report.schema.json")
    jsonschema.validate(report, schema)
