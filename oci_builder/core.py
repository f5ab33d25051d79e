"""Build orchestration: config → artifact → nix build → attestations → distribution.

``run_oci_pipeline`` walks the stages of ``Stage`` strictly in order. Any
failure raises an ``OciBuilderError`` and nothing after it runs; there is no
resume, a rerun starts again from the first stage. External collaborators
live on ``Toolchain`` so they can be swapped out as a unit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from oci_builder import vcs
from oci_builder.builder import nix
from oci_builder.builder.nix import AppDetails, ClosureGraph
from oci_builder.buildpacks.generate import generate
from oci_builder.config.io import read_config
from oci_builder.config.models import Config, OCIArtifact
from oci_builder.dockerfile import modify_dockerfile_with_tag
from oci_builder.errors import ExternalToolError, PlatformError, UsageError
from oci_builder.lockfile import LockFile, read_lockfile
from oci_builder.mutate import apply_tag
from oci_builder.naming import UNKNOWN_ARCH, arch_for_platform, oci_attr_name
from oci_builder.package import attestations, docker
from oci_builder.package.docker import DockerEndpoint
from oci_builder.platforms import find_platform
from oci_builder.selector import select_artifact
from oci_builder.settings import Settings

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    LOAD_CONFIG = "load_config"
    RESOLVE = "resolve_platform_and_artifact"
    MUTATE_OR_PATCH = "mutate_or_patch"
    PREPARE_WORKSPACE = "prepare_workspace"
    INVOKE_BUILDER = "invoke_builder"
    READ_LOCK_AND_CLOSURE = "read_lock_and_closure"
    GENERATE_ARTIFACTS = "generate_artifacts"
    DISTRIBUTE = "distribute"


@dataclass
class OciRequest:
    """Everything one ``oci`` invocation asks for."""

    artifact: str
    platform: str = ""
    output: str = ""
    tag: str = ""
    dockerfile_dir: str = ""
    dev_deps: bool = False
    df_swap: bool = False
    load_docker: bool = False
    load_podman: bool = False
    push: bool = False
    root: Path = field(default_factory=Path.cwd)


@dataclass
class Toolchain:
    generate: Callable[[Config, Path], list[Path]]
    git_add: Callable[[str, Path], None]
    git_ignore: Callable[[str, Path], object]
    build: Callable[[Path, str, Path], None]
    closure_graph: Callable[[str, str, str, Path], tuple[AppDetails, ClosureGraph]]
    generate_artifacts: Callable[..., list[Path]]
    docker_endpoint: Callable[[], DockerEndpoint]
    load_docker: Callable[[str, Path, str], object]
    load_podman: Callable[[Path, str], object]
    push: Callable[[Path, str], object]

    @classmethod
    def default(cls, settings: Settings) -> Toolchain:
        return cls(
            generate=generate,
            git_add=lambda path, cwd: vcs.add(path, cwd=cwd, git_bin=settings.git_bin),
            git_ignore=lambda path, cwd: vcs.ignore(path, cwd=cwd),
            build=lambda out, attr, cwd: nix.build(out, attr, cwd=cwd, nix_bin=settings.nix_bin),
            closure_graph=lambda app, output, link, cwd: nix.runtime_closure_graph(
                app, output, link, cwd=cwd, nix_bin=settings.nix_bin
            ),
            generate_artifacts=attestations.generate_artifacts,
            docker_endpoint=lambda: docker.resolve_docker_endpoint(
                settings.docker_config_dir, settings.default_docker_host
            ),
            load_docker=lambda host, layout, image: docker.load_docker(
                host, layout, image, timeout=settings.docker_timeout
            ),
            load_podman=lambda layout, image: docker.load_podman(
                layout, image, podman_bin=settings.podman_bin
            ),
            push=lambda layout, image: docker.push(layout, image, skopeo_bin=settings.skopeo_bin),
        )


@dataclass
class DockerfilePatched:
    """Terminal outcome of ``--df-swap``: no build was attempted."""

    path: Path
    tag: str


@dataclass
class PipelineResult:
    artifact: OCIArtifact
    platform: str
    attribute: str
    output: Path
    files: list[Path] = field(default_factory=list)
    distributed: list[str] = field(default_factory=list)


Notify = Callable[[str], None]


def _noop(_: str) -> None:
    return None


def _enter(stage: Stage) -> None:
    logger.info("entering stage %s", stage.value, extra={"stage": stage.value})


def _prepare_workspace(
    config: Config, request: OciRequest, settings: Settings, tools: Toolchain, output: str
) -> None:
    tools.generate(config, request.root / settings.workdir)
    tools.git_add(f"{settings.workdir}/", request.root)
    tools.git_ignore(f"{output}/", request.root)


def _invoke_builder(
    artifact: OCIArtifact,
    platform: str,
    request: OciRequest,
    settings: Settings,
    tools: Toolchain,
    output: str,
) -> str:
    attribute = oci_attr_name(artifact.artifact, platform, request.dev_deps, settings.workdir)
    if arch_for_platform(platform) == UNKNOWN_ARCH:
        raise PlatformError(f"no nix system is known for platform {platform}")
    out_link = request.root / f"{output}{settings.result_symlink}"
    tools.build(out_link, attribute, request.root)
    return attribute


def _read_lock_and_closure(
    artifact: OCIArtifact, request: OciRequest, settings: Settings, tools: Toolchain, output: str
) -> tuple[LockFile, AppDetails, ClosureGraph]:
    lock = read_lockfile(request.root / settings.lock_file)
    app, graph = tools.closure_graph(lock.app.name, output, settings.result_symlink, request.root)
    app.name = artifact.name
    return lock, app, graph


def _distribute(
    artifact: OCIArtifact, request: OciRequest, tools: Toolchain, layout: Path, notify: Notify
) -> list[str]:
    done: list[str] = []
    if request.load_docker:
        notify("Loading image to docker daemon...")
        endpoint = tools.docker_endpoint()
        try:
            tools.load_docker(endpoint.host, layout, artifact.name)
        except ExternalToolError as e:
            if not endpoint.discovered and e.hint is None:
                e.hint = "Is Docker installed?"
            raise
        notify(f"Image {artifact.name} loaded to docker daemon")
        done.append("docker")

    if request.load_podman:
        notify("Loading image to podman...")
        tools.load_podman(layout, artifact.name)
        notify(f"Image {artifact.name} loaded to podman")
        done.append("podman")

    if request.push:
        notify("Pushing image to registry...")
        tools.push(layout, artifact.name)
        notify(f"Image {artifact.name} pushed to registry")
        done.append("registry")
    return done


def run_oci_pipeline(
    request: OciRequest,
    settings: Settings,
    tools: Toolchain | None = None,
    notify: Notify = _noop,
) -> PipelineResult | DockerfilePatched:
    tools = tools or Toolchain.default(settings)
    root = request.root

    _enter(Stage.LOAD_CONFIG)
    config_path = root / settings.config_file
    config = read_config(config_path)

    _enter(Stage.RESOLVE)
    artifact, platform = select_artifact(config, request.platform, request.artifact)

    _enter(Stage.MUTATE_OR_PATCH)
    if request.tag and not request.df_swap:
        artifact = apply_tag(config, artifact, request.tag, config_path)
    if request.df_swap:
        if not request.tag:
            raise UsageError("no tag given for --df-swap", hint="use --tag flag to define a tag")
        directory = str(root / request.dockerfile_dir) if request.dockerfile_dir else str(root)
        path = modify_dockerfile_with_tag(directory, request.tag, request.dev_deps)
        return DockerfilePatched(path=path, tag=request.tag)

    output = request.output or settings.default_output

    _enter(Stage.PREPARE_WORKSPACE)
    _prepare_workspace(config, request, settings, tools, output)

    _enter(Stage.INVOKE_BUILDER)
    attribute = _invoke_builder(artifact, platform, request, settings, tools, output)
    notify("Generating artifacts...")

    _enter(Stage.READ_LOCK_AND_CLOSURE)
    lock, app, graph = _read_lock_and_closure(artifact, request, settings, tools, output)

    _enter(Stage.GENERATE_ARTIFACTS)
    tos, tarch = find_platform(platform)
    files = tools.generate_artifacts(
        output, settings.result_symlink, lock, app, graph, tos, tarch, cwd=root
    )
    result = PipelineResult(
        artifact=artifact,
        platform=platform,
        attribute=attribute,
        output=root / output,
        files=files,
    )
    notify(f"Build completed successfully, please check the {output} directory")

    _enter(Stage.DISTRIBUTE)
    layout = root / f"{output}{settings.result_symlink}"
    result.distributed = _distribute(artifact, request, tools, layout, notify)
    return result
