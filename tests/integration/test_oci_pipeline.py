"""End-to-end runs of the oci pipeline against a recording toolchain."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from oci_builder import platforms
from oci_builder.config.io import read_config
from oci_builder.core import DockerfilePatched, OciRequest, PipelineResult, run_oci_pipeline
from oci_builder.errors import (
    ConfigError,
    ExternalToolError,
    FileAccessError,
    PlatformError,
    UsageError,
)
from oci_builder.package.attestations import PROVENANCE_FILE, SBOM_FILE
from oci_builder.settings import Settings

BUILD_STEPS = ["generate", "git_add", "git_ignore", "build", "closure_graph", "generate_artifacts"]


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


def _request(root: Path, **kw) -> OciRequest:
    kw.setdefault("platform", "linux/amd64")
    return OciRequest(artifact="svc", root=root, **kw)


@pytest.mark.timeout(20)
def test_full_pipeline_with_every_distribution(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    messages: list[str] = []

    result = run_oci_pipeline(
        _request(project, load_docker=True, load_podman=True, push=True),
        settings,
        tools.toolchain(),
        notify=messages.append,
    )

    assert isinstance(result, PipelineResult)
    assert tools.calls == [*BUILD_STEPS, "load_docker", "load_podman", "push"]
    assert result.attribute == "ocib/.#ociImages.x86_64-linux.ociImage_svc_app-as-dir"
    assert result.distributed == ["docker", "podman", "registry"]
    assert tools.args["build"][0] == project / "ocib-result/result"
    assert tools.args["git_add"] == ("ocib/",)
    assert tools.args["git_ignore"] == ("ocib-result/",)
    assert tools.args["closure_graph"] == ("svc", "ocib-result", "/result")
    assert tools.args["load_docker"] == ("unix:///var/run/docker.sock", "svc:latest")
    assert messages == [
        "Generating artifacts...",
        "Build completed successfully, please check the ocib-result directory",
        "Loading image to docker daemon...",
        "Image svc:latest loaded to docker daemon",
        "Loading image to podman...",
        "Image svc:latest loaded to podman",
        "Pushing image to registry...",
        "Image svc:latest pushed to registry",
    ]

    assert (project / "ocib" / "flake.nix").is_file()
    sbom = json.loads((project / "ocib-result" / SBOM_FILE).read_text(encoding="utf-8"))
    assert sbom["metadata"]["component"]["name"] == "svc:latest"
    assert (project / "ocib-result" / (PROVENANCE_FILE + ".sha256")).is_file()


def test_build_only_skips_distribution(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    result = run_oci_pipeline(_request(project, output="out", dev_deps=True), settings, tools.toolchain())

    assert tools.calls == BUILD_STEPS
    assert result.distributed == []
    assert result.attribute.endswith("ociImage_svc_app_with_dev-as-dir")
    assert result.output == project / "out"


@pytest.mark.parametrize("step", BUILD_STEPS)
def test_failing_step_stops_the_pipeline(project: Path, settings: Settings, fake_tools, step: str) -> None:
    tools = fake_tools(fail=step)

    with pytest.raises(ExternalToolError):
        run_oci_pipeline(_request(project, load_docker=True, push=True), settings, tools.toolchain())

    assert tools.calls == BUILD_STEPS[: BUILD_STEPS.index(step) + 1]


def test_docker_failure_aborts_later_branches(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools(fail="load_docker")

    with pytest.raises(ExternalToolError) as exc:
        run_oci_pipeline(
            _request(project, load_docker=True, load_podman=True, push=True), settings, tools.toolchain()
        )

    assert tools.calls[-1] == "load_docker"
    assert "push" not in tools.calls and "load_podman" not in tools.calls
    assert exc.value.hint is None


def test_undiscovered_docker_gets_install_hint(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools(fail="load_docker", discovered=False)

    with pytest.raises(ExternalToolError) as exc:
        run_oci_pipeline(_request(project, load_docker=True), settings, tools.toolchain())

    assert exc.value.hint == "Is Docker installed?"


def test_unknown_label_never_reaches_the_builder(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    request = OciRequest(artifact="nope", platform="linux/amd64", root=project)

    with pytest.raises(ConfigError) as exc:
        run_oci_pipeline(request, settings, tools.toolchain())

    assert str(exc.value).endswith("are: svc")
    assert tools.calls == []


def test_unsupported_platform(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    with pytest.raises(PlatformError):
        run_oci_pipeline(_request(project, platform="windows/amd64"), settings, tools.toolchain())
    assert tools.calls == []


def test_platform_without_nix_system_stops_before_build(
    project: Path, settings: Settings, fake_tools
) -> None:
    tools = fake_tools()
    with pytest.raises(PlatformError) as exc:
        run_oci_pipeline(_request(project, platform="linux/amd64/v3"), settings, tools.toolchain())
    assert "no nix system" in exc.value.message
    assert tools.calls == ["generate", "git_add", "git_ignore"]


def test_tag_is_persisted_before_build(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()

    result = run_oci_pipeline(_request(project, tag="v2", push=True), settings, tools.toolchain())

    assert result.artifact.name == "svc:v2"
    assert tools.args["push"] == ("svc:v2",)
    assert read_config(project / "ocib.yaml").oci[0].name == "svc:v2"


def test_df_swap_needs_a_tag(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    (project / "Dockerfile").write_text("FROM svc-base:latest\n", encoding="utf-8")
    before = (project / "ocib.yaml").read_text(encoding="utf-8")

    with pytest.raises(UsageError) as exc:
        run_oci_pipeline(_request(project, df_swap=True), settings, tools.toolchain())

    assert exc.value.hint == "use --tag flag to define a tag"
    assert (project / "Dockerfile").read_text(encoding="utf-8") == "FROM svc-base:latest\n"
    assert (project / "ocib.yaml").read_text(encoding="utf-8") == before
    assert tools.calls == []


def test_df_swap_patches_dockerfile_only(project: Path, settings: Settings, fake_tools) -> None:
    tools = fake_tools()
    (project / "docker").mkdir()
    (project / "docker" / "Dockerfile").write_text("FROM svc-base:latest\n", encoding="utf-8")
    before = (project / "ocib.yaml").read_text(encoding="utf-8")

    outcome = run_oci_pipeline(
        _request(project, df_swap=True, tag="v3", dockerfile_dir="docker"), settings, tools.toolchain()
    )

    assert isinstance(outcome, DockerfilePatched)
    assert outcome.tag == "v3"
    assert outcome.path.read_text(encoding="utf-8") == "FROM svc-base:v3\n"
    assert (project / "ocib.yaml").read_text(encoding="utf-8") == before
    assert tools.calls == []


def test_missing_lock_file_fails_after_build(project: Path, settings: Settings, fake_tools) -> None:
    (project / "ocib.lock").unlink()
    tools = fake_tools()
    with pytest.raises(FileAccessError):
        run_oci_pipeline(_request(project), settings, tools.toolchain())
    assert tools.calls == ["generate", "git_add", "git_ignore", "build"]


def test_empty_platform_builds_for_host(
    project: Path, settings: Settings, fake_tools, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(platforms, "host_platform", lambda: ("linux", "arm64"))
    tools = fake_tools()

    result = run_oci_pipeline(OciRequest(artifact="svc", root=project), settings, tools.toolchain())

    assert result.platform == "linux/arm64"
    assert ".#ociImages.aarch64-linux." in result.attribute
    assert tools.calls == BUILD_STEPS
    sbom = json.loads((project / "ocib-result" / SBOM_FILE).read_text(encoding="utf-8"))
    props = {p["name"]: p["value"] for p in sbom["metadata"]["component"]["properties"]}
    assert props["oci:architecture"] == "arm64"
