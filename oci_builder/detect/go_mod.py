"""Go module detector: reads the module path from ``go.mod``."""

from __future__ import annotations

from pathlib import Path

from .base import DetectReport, ProjectType


def module_name(text: str) -> str | None:
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("module"):
            return line[len("module") :].strip().strip('"') or None
    return None


def detect(root: Path) -> DetectReport:
    gomod = root / "go.mod"
    if not gomod.is_file():
        return DetectReport(notes=["No go.mod found"])

    name = module_name(gomod.read_text(encoding="utf-8"))
    entry = "main.go" if (root / "main.go").exists() else None
    return DetectReport(
        score=0.9 if name else 0.6,
        project_type=ProjectType.GO_MODULE,
        name=name,
        entrypoint=entry,
        notes=["Found go.mod" + ("" if name else " without a module directive")],
    )
