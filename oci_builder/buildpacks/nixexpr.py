"""Tiny helpers for emitting Nix expressions."""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import PurePosixPath


def nix_str(value: str) -> str:
    # JSON string escaping is valid Nix apart from antiquotation.
    return json.dumps(value).replace("${", "\\${")


def nix_list(values: Iterable[str]) -> str:
    items = [nix_str(v) for v in values]
    return "[ " + " ".join(items) + " ]" if items else "[ ]"


def nix_bool(value: bool) -> str:
    return "true" if value else "false"


def nix_path(project_relative: str) -> str:
    """Path literal for a project-relative path, seen from the generated dir."""
    p = PurePosixPath(project_relative)
    if p.is_absolute():
        return str(p)
    parts = [part for part in p.parts if part != "."]
    return "../" + "/".join(parts) if parts else "../."


def package_attr(spec: str) -> str:
    """``go@1.21`` -> ``go``."""
    return spec.split("@", 1)[0]
