"""Poetry project detector.

Heuristics:
- ``pyproject.toml`` with a ``[tool.poetry]`` table → Poetry, name from it.
- ``poetry.lock`` next to it raises confidence.
- First ``[tool.poetry.scripts]`` entry is reported as the entrypoint.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from .base import DetectReport, ProjectType


def detect(root: Path) -> DetectReport:
    pyproject = root / "pyproject.toml"
    if not pyproject.is_file():
        return DetectReport(notes=["No pyproject.toml found"])
    try:
        data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        return DetectReport(score=0.1, notes=[f"pyproject.toml unreadable: {e}"])

    poetry = data.get("tool", {}).get("poetry")
    if not isinstance(poetry, dict):
        return DetectReport(score=0.2, notes=["pyproject.toml is not a Poetry project"])

    scripts = poetry.get("scripts") or {}
    locked = (root / "poetry.lock").exists()
    return DetectReport(
        score=0.9 if locked else 0.7,
        project_type=ProjectType.POETRY,
        name=poetry.get("name"),
        entrypoint=next(iter(scripts), None),
        notes=["Detected Poetry project" + (" with poetry.lock" if locked else "")],
    )
