"""Node package detector.

Heuristics:
- Look for package.json; a lock file (package-lock.json) raises confidence
- Entry candidates: ``main`` field, then `server.js`, `src/index.js`, `index.js`
"""

from __future__ import annotations

import json
from pathlib import Path

from .base import DetectReport, ProjectType

_CANDIDATE_ENTRIES = [
    "server.js",
    "src/index.js",
    "index.js",
]


def _read_package_json(root: Path) -> dict | None:
    pj = root / "package.json"
    if not pj.exists():
        return None
    try:
        data = json.loads(pj.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return None
    return data if isinstance(data, dict) else None


def detect(root: Path) -> DetectReport:
    pkg = _read_package_json(root)
    if not pkg:
        return DetectReport(notes=["No package.json found"])

    entry = pkg.get("main")
    if not entry:
        entry = next((p for p in _CANDIDATE_ENTRIES if (root / p).exists()), None)

    locked = (root / "package-lock.json").exists()
    return DetectReport(
        score=0.85 if locked else 0.6,
        project_type=ProjectType.JS_NPM,
        name=pkg.get("name"),
        entrypoint=entry,
        notes=["Detected npm project" + ("" if locked else " (no package-lock.json)")],
    )
