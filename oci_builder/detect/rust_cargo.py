"""Cargo crate detector."""

from __future__ import annotations

import tomllib
from pathlib import Path

from .base import DetectReport, ProjectType


def detect(root: Path) -> DetectReport:
    cargo = root / "Cargo.toml"
    if not cargo.is_file():
        return DetectReport(notes=["No Cargo.toml found"])
    try:
        data = tomllib.loads(cargo.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        return DetectReport(score=0.1, notes=[f"Cargo.toml unreadable: {e}"])

    package = data.get("package") or {}
    if not package and "workspace" in data:
        return DetectReport(
            score=0.5,
            project_type=ProjectType.RUST_CARGO,
            notes=["Cargo workspace without a root package"],
        )

    bins = data.get("bin") or []
    entry = bins[0].get("name") if bins else package.get("name")
    return DetectReport(
        score=0.9,
        project_type=ProjectType.RUST_CARGO,
        name=package.get("name"),
        entrypoint=entry,
        notes=["Found Cargo.toml"],
    )
