"""Starter ``ocib.yaml`` for ``oci-builder init``."""

from __future__ import annotations

import re
from pathlib import Path

from oci_builder.config.io import write_config
from oci_builder.config.models import (
    PKGS_ARTIFACT,
    Config,
    GoModule,
    JsNpmApp,
    OCIArtifact,
    Packages,
    PoetryApp,
    RustApp,
)
from oci_builder.detect.base import DetectReport, ProjectType
from oci_builder.errors import FileAccessError

_STARTER_PACKAGES = {
    ProjectType.GO_MODULE: Packages(development=["go", "gopls"], runtime=["cacert"]),
    ProjectType.POETRY: Packages(development=["python3", "poetry"], runtime=["cacert"]),
    ProjectType.RUST_CARGO: Packages(development=["cargo", "rustc"], runtime=["cacert"]),
    ProjectType.JS_NPM: Packages(development=["nodejs"], runtime=["nodejs", "cacert"]),
    ProjectType.UNKNOWN: Packages(development=[], runtime=["cacert"]),
}


def _slug(name: str) -> str:
    base = name.rstrip("/").rsplit("/", 1)[-1].lower()
    return re.sub(r"[^a-z0-9._-]+", "-", base).strip("-") or "app"


def starter_config(report: DetectReport, fallback_name: str) -> Config:
    name = report.name or fallback_name
    slug = _slug(name)
    config = Config(packages=_STARTER_PACKAGES[report.project_type].model_copy(deep=True))

    if report.project_type is ProjectType.GO_MODULE:
        config.gomodule = GoModule(name=name)
    elif report.project_type is ProjectType.POETRY:
        config.poetryapp = PoetryApp()
    elif report.project_type is ProjectType.RUST_CARGO:
        config.rustapp = RustApp(crate_name=name)
    elif report.project_type is ProjectType.JS_NPM:
        config.jsnpmapp = JsNpmApp()

    config.oci.append(OCIArtifact(artifact=PKGS_ARTIFACT, name=f"{slug}-base:latest"))
    if config.app() is not None:
        cmd: list[str] = []
        if report.project_type in (ProjectType.GO_MODULE, ProjectType.RUST_CARGO):
            cmd = [f"/bin/{slug}"]
        elif report.project_type is ProjectType.POETRY and report.entrypoint:
            cmd = [f"/bin/{report.entrypoint}"]
        config.oci.append(OCIArtifact(artifact="app", name=f"{slug}:latest", cmd=cmd))
    return config


def write_starter(root: Path, config_file: str, report: DetectReport, *, force: bool = False) -> Path:
    path = root / config_file
    if path.exists() and not force:
        raise FileAccessError(f"{path} already exists", hint="pass --force to overwrite it")
    write_config(starter_config(report, root.resolve().name), path)
    return path
