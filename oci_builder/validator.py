"""Schema validation for the configuration document."""

from __future__ import annotations

import json
from functools import cache
from importlib import resources

from jsonschema import Draft202012Validator

# --- Schema loaders ---------------------------------------------------------


def _load_schema(package: str, resource_name: str) -> dict:
    with resources.files(package).joinpath(resource_name).open("r", encoding="utf-8") as f:
        return json.load(f)


@cache
def _config_validator() -> Draft202012Validator:
    return Draft202012Validator(_load_schema("oci_builder.schema", "config.schema.json"))


# --- Public validators ------------------------------------------------------


def config_errors(data: dict) -> list[str]:
    """Return every schema violation in *data*, each prefixed with its JSON path."""
    errors = sorted(_config_validator().iter_errors(data), key=lambda e: list(e.path))
    return [f"{e.json_path}: {e.message}" for e in errors]
