"""Detection API and dispatcher.

This module defines the typed contract for detectors and a dispatcher that
runs every ecosystem detector and keeps the highest-scoring report.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Protocol

from pydantic import BaseModel


class ProjectType(str, Enum):
    GO_MODULE = "GoModule"
    POETRY = "Poetry"
    RUST_CARGO = "RustCargo"
    JS_NPM = "JsNpm"
    UNKNOWN = "Unknown"


class DetectReport(BaseModel):
    """Normalized detection result.

    Attributes
    ----------
    score: float
        Confidence (0..1). Higher is better.
    project_type: ProjectType
        Ecosystem of the project root.
    name: str | None
        Module, crate or package name when the manifest declares one.
    entrypoint: str | None
        Main binary or script, when it can be read from the manifest.
    notes: list[str]
        Free-form observations from detectors.
    """

    score: float = 0.0
    project_type: ProjectType = ProjectType.UNKNOWN
    name: str | None = None
    entrypoint: str | None = None
    notes: list[str] = []


class Detector(Protocol):
    def __call__(self, root: Path) -> DetectReport: ...


def _detectors() -> list[Detector]:
    from .go_mod import detect as detect_go
    from .node_pkg import detect as detect_node
    from .python_poetry import detect as detect_poetry
    from .rust_cargo import detect as detect_rust

    return [detect_go, detect_poetry, detect_rust, detect_node]


def detect_project(root: Path) -> DetectReport:
    """Run every detector and return the best report.

    Ties keep the earlier detector (Go, Poetry, Rust, Node).
    """
    best = DetectReport(notes=["No supported project manifest found"])
    for detect in _detectors():
        report = detect(root)
        if report.score > best.score:
            best = report
    return best
