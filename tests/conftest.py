"""Shared fixtures: a sample project on disk and a recording fake toolchain."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from oci_builder.builder.nix import AppDetails, ClosureGraph, StorePathInfo
from oci_builder.buildpacks.generate import generate
from oci_builder.core import Toolchain
from oci_builder.errors import ExternalToolError
from oci_builder.package.attestations import generate_artifacts
from oci_builder.package.docker import DockerEndpoint

SAMPLE_CONFIG = """\
# hand-written comment, dropped on rewrite
packages:
  development: [go@1.22, gopls]
  runtime: [cacert@3.95]
gomodule:
  name: example.com/svc
oci:
  - artifact: svc
    name: svc:latest
    envVars: [PORT=8080]
    exposedPorts: ["8080"]
"""

SAMPLE_LOCK = {
    "app": {"name": "svc", "entrypoint": "/bin/svc"},
    "packages": [
        {"package": {"name": "cacert", "version": "3.95", "license": "MPL-2.0"}, "runtime": True},
        {"package": {"name": "go", "version": "1.22.1"}, "runtime": False},
    ],
}

APP_PATH = "/nix/store/" + "a" * 32 + "-svc-1.0.0"
CACERT_PATH = "/nix/store/" + "b" * 32 + "-nss-cacert-3.95"


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project root with ocib.yaml and ocib.lock."""
    (tmp_path / "ocib.yaml").write_text(SAMPLE_CONFIG, encoding="utf-8")
    (tmp_path / "ocib.lock").write_text(json.dumps(SAMPLE_LOCK), encoding="utf-8")
    return tmp_path


class FakeTools:
    """Records every external call in order; fails the step named *fail*."""

    def __init__(self, fail: str | None = None, discovered: bool = True) -> None:
        self.fail = fail
        self.discovered = discovered
        self.calls: list[str] = []
        self.args: dict[str, tuple] = {}

    def _step(self, name: str, *args: object) -> None:
        self.calls.append(name)
        self.args[name] = args
        if self.fail == name:
            raise ExternalToolError(f"{name} failed", tool=name)

    def toolchain(self) -> Toolchain:
        def do_generate(config, workdir):
            self._step("generate", workdir)
            return generate(config, workdir)

        def build(out_link: Path, attribute: str, cwd: Path) -> None:
            self._step("build", out_link, attribute)
            out_link.mkdir(parents=True, exist_ok=True)
            (out_link / "index.json").write_text('{"schemaVersion": 2}', encoding="utf-8")

        def closure_graph(app_name, output, symlink, cwd):
            self._step("closure_graph", app_name, output, symlink)
            graph = ClosureGraph(
                root=APP_PATH,
                nodes={
                    APP_PATH: StorePathInfo(
                        APP_PATH, "svc", "1.0.0", nar_size=10, references=[CACERT_PATH]
                    ),
                    CACERT_PATH: StorePathInfo(CACERT_PATH, "nss-cacert", "3.95", nar_size=5),
                },
            )
            return AppDetails(name=app_name, store_path=APP_PATH, version="1.0.0"), graph

        def do_generate_artifacts(*args, **kwargs):
            self._step("generate_artifacts", *args)
            return generate_artifacts(*args, **kwargs)

        return Toolchain(
            generate=do_generate,
            git_add=lambda path, cwd: self._step("git_add", path),
            git_ignore=lambda path, cwd: self._step("git_ignore", path),
            build=build,
            closure_graph=closure_graph,
            generate_artifacts=do_generate_artifacts,
            docker_endpoint=lambda: DockerEndpoint(
                "default", "unix:///var/run/docker.sock", discovered=self.discovered
            ),
            load_docker=lambda host, layout, image: self._step("load_docker", host, image),
            load_podman=lambda layout, image: self._step("load_podman", image),
            push=lambda layout, image: self._step("push", image),
        )


@pytest.fixture
def fake_tools() -> Callable[..., FakeTools]:
    return FakeTools
