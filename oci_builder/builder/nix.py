"""Nix as the Builder: ``nix build`` for images, ``nix path-info`` for closures.

Dependency resolution, caching and retries all belong to Nix; this module
only runs it and reads back what it produced.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from oci_builder.errors import ExternalToolError
from oci_builder.process import run_tool

logger = logging.getLogger(__name__)

_FEATURES = ["--extra-experimental-features", "nix-command flakes"]
_HASH_LEN = 32


@dataclass
class StorePathInfo:
    path: str
    name: str
    version: str
    nar_size: int = 0
    nar_hash: str | None = None
    references: list[str] = field(default_factory=list)


@dataclass
class ClosureGraph:
    """Runtime closure of one store path: nodes keyed by store path."""

    root: str
    nodes: dict[str, StorePathInfo] = field(default_factory=dict)

    def edges(self) -> list[tuple[str, str]]:
        return [
            (src, ref)
            for src, info in sorted(self.nodes.items())
            for ref in sorted(info.references)
            if ref != src
        ]

    @property
    def closure_size(self) -> int:
        return sum(n.nar_size for n in self.nodes.values())


@dataclass
class AppDetails:
    name: str
    store_path: str
    version: str = ""
    closure_size: int = 0


def parse_store_name(store_path: str) -> tuple[str, str]:
    """Split ``/nix/store/<hash>-<name>-<version>`` into name and version.

    The version starts at the first ``-`` that is followed by a non-letter.
    """
    base = PurePosixPath(store_path).name
    if len(base) > _HASH_LEN and base[_HASH_LEN] == "-":
        base = base[_HASH_LEN + 1 :]
    for i, ch in enumerate(base):
        if ch == "-" and i + 1 < len(base) and not base[i + 1].isalpha():
            return base[:i], base[i + 1 :]
    return base, ""


def build(out_link: Path, attribute: str, *, cwd: Path | None = None, nix_bin: str = "nix") -> None:
    """Build *attribute* and leave a symlink to the result at *out_link*."""
    out_link.parent.mkdir(parents=True, exist_ok=True)
    run_tool([nix_bin, "build", *_FEATURES, attribute, "-o", str(out_link)], cwd=cwd, tool="nix")


def _iter_path_info(payload: object) -> list[dict]:
    # Nix < 2.19 prints a list of objects carrying "path"; later versions
    # print a mapping from store path to object (or null when invalid).
    if isinstance(payload, list):
        return [p for p in payload if isinstance(p, dict) and p.get("path")]
    if isinstance(payload, dict):
        return [{"path": k, **v} for k, v in payload.items() if isinstance(v, dict)]
    raise ValueError(f"unexpected nix path-info output: {type(payload).__name__}")


def _full_ref(ref: str, store_dir: str) -> str:
    return ref if ref.startswith("/") else f"{store_dir}/{ref}"


def parse_closure(payload: object, root: str) -> ClosureGraph:
    store_dir = str(PurePosixPath(root).parent)
    graph = ClosureGraph(root=root)
    for entry in _iter_path_info(payload):
        path = entry["path"]
        name, version = parse_store_name(path)
        graph.nodes[path] = StorePathInfo(
            path=path,
            name=name,
            version=version,
            nar_size=int(entry.get("narSize") or 0),
            nar_hash=entry.get("narHash"),
            references=[_full_ref(r, store_dir) for r in entry.get("references") or []],
        )
    return graph


def runtime_closure_graph(
    app_name: str,
    output: str,
    symlink: str,
    *,
    cwd: Path | None = None,
    nix_bin: str = "nix",
) -> tuple[AppDetails, ClosureGraph]:
    """Query the runtime closure of ``<output><symlink>``."""
    base = cwd or Path.cwd()
    link = base / f"{output}{symlink}"
    if not link.exists():
        raise ExternalToolError(f"build result {link} does not exist", tool="nix")
    root = os.path.realpath(link)

    result = run_tool(
        [nix_bin, "path-info", *_FEATURES, "--recursive", "--json", str(link)],
        cwd=cwd,
        capture=True,
        tool="nix",
    )
    try:
        graph = parse_closure(json.loads(result.stdout), root)
    except (json.JSONDecodeError, ValueError) as e:
        raise ExternalToolError(f"cannot parse nix path-info output: {e}", tool="nix") from e

    _, version = parse_store_name(root)
    details = AppDetails(
        name=app_name,
        store_path=root,
        version=version,
        closure_size=graph.closure_size,
    )
    logger.info("closure of %s: %d paths, %d bytes", root, len(graph.nodes), details.closure_size)
    return details, graph
