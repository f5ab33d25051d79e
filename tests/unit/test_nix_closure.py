from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest

from oci_builder.builder import nix
from oci_builder.builder.nix import parse_closure, parse_store_name, runtime_closure_graph
from oci_builder.errors import ExternalToolError

STORE = "/nix/store/"
APP = STORE + "a" * 32 + "-svc-1.0.0"
GLIBC = STORE + "c" * 32 + "-glibc-2.39-52"


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        (APP, ("svc", "1.0.0")),
        (GLIBC, ("glibc", "2.39-52")),
        (STORE + "d" * 32 + "-nss-cacert-3.95", ("nss-cacert", "3.95")),
        (STORE + "e" * 32 + "-source", ("source", "")),
    ],
)
def test_parse_store_name(path: str, expected: tuple[str, str]) -> None:
    assert parse_store_name(path) == expected


def test_parse_closure_list_shape() -> None:
    payload = [
        {"path": APP, "narSize": 100, "narHash": "sha256-x", "references": [GLIBC, APP]},
        {"path": GLIBC, "narSize": 50, "references": []},
    ]
    graph = parse_closure(payload, APP)
    assert graph.closure_size == 150
    assert graph.edges() == [(APP, GLIBC)]
    assert graph.nodes[GLIBC].name == "glibc"


def test_parse_closure_mapping_shape_with_short_refs() -> None:
    payload = {
        APP: {"narSize": 100, "references": [GLIBC.removeprefix(STORE)]},
        GLIBC: {"narSize": 50, "references": []},
        STORE + "f" * 32 + "-gone": None,
    }
    graph = parse_closure(payload, APP)
    assert set(graph.nodes) == {APP, GLIBC}
    assert graph.nodes[APP].references == [GLIBC]


def test_parse_closure_rejects_other_shapes() -> None:
    with pytest.raises(ValueError):
        parse_closure("nope", APP)


def test_runtime_closure_graph_queries_result_link(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    (tmp_path / "ocib-result").mkdir()
    (tmp_path / "ocib-result" / "result").mkdir()
    seen: list[list[str]] = []

    def fake_run(cmd, **kwargs):
        seen.append(cmd)
        out = json.dumps([{"path": APP, "narSize": 7, "references": []}])
        return subprocess.CompletedProcess(cmd, 0, stdout=out, stderr="")

    monkeypatch.setattr(nix, "run_tool", fake_run)

    details, graph = runtime_closure_graph("svc", "ocib-result", "/result", cwd=tmp_path)

    assert details.name == "svc"
    assert details.closure_size == 7
    assert "--recursive" in seen[0] and "--json" in seen[0]
    assert seen[0][-1] == str(tmp_path / "ocib-result/result")
    assert APP in graph.nodes


def test_runtime_closure_graph_needs_a_build_result(tmp_path: Path) -> None:
    with pytest.raises(ExternalToolError) as exc:
        runtime_closure_graph("svc", "ocib-result", "/result", cwd=tmp_path)
    assert "does not exist" in exc.value.message


def test_runtime_closure_graph_bad_json(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / "out" / "result").mkdir(parents=True)
    monkeypatch.setattr(
        nix,
        "run_tool",
        lambda cmd, **kw: subprocess.CompletedProcess(cmd, 0, stdout="not json", stderr=""),
    )
    with pytest.raises(ExternalToolError):
        runtime_closure_graph("svc", "out", "/result", cwd=tmp_path)


def test_build_invokes_flake_attribute(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[list[str]] = []
    monkeypatch.setattr(nix, "run_tool", lambda cmd, **kw: seen.append(cmd))

    nix.build(tmp_path / "out/result", "ocib/.#ociImages.x86_64-linux.ociImage_pkgs_runtime-as-dir")

    [cmd] = seen
    assert cmd[:2] == ["nix", "build"]
    assert "nix-command flakes" in cmd
    assert cmd[-2:] == ["-o", str(tmp_path / "out/result")]
