"""Attestations for a built image: CycloneDX SBOM and SLSA provenance.

Both documents are written next to the ``result`` link in the output
directory, each with a ``.sha256`` sidecar:
- ``sbom.cdx.json``: the runtime closure as CycloneDX 1.5 components
- ``provenance.json``: an in-toto statement with a SLSA v1 predicate

Entries are sorted so two builds of the same closure produce the same
component list.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path

from oci_builder.builder.nix import AppDetails, ClosureGraph
from oci_builder.errors import FileAccessError
from oci_builder.lockfile import LockFile
from oci_builder.signing.checks import sha256, write_sidecar

logger = logging.getLogger(__name__)

SBOM_FILE = "sbom.cdx.json"
PROVENANCE_FILE = "provenance.json"
BUILD_TYPE = "https://oci-builder.dev/buildtypes/nix-oci/v1"


def _purl(name: str, version: str) -> str:
    return f"pkg:nix/{name}@{version}" if version else f"pkg:nix/{name}"


def _bom_ref(path: str) -> str:
    return Path(path).name


def build_sbom(
    lock: LockFile, app: AppDetails, graph: ClosureGraph, tos: str, tarch: str
) -> dict:
    locked = {p.name: p for p in lock.runtime_packages()}
    components = []
    for path, node in sorted(graph.nodes.items()):
        component = {
            "type": "library",
            "bom-ref": _bom_ref(path),
            "name": node.name,
            "version": node.version,
            "purl": _purl(node.name, node.version),
        }
        if node.nar_hash:
            component["properties"] = [{"name": "nix:narHash", "value": node.nar_hash}]
        meta = locked.get(node.name)
        if meta is not None:
            if meta.description:
                component["description"] = meta.description
            if meta.license:
                component["licenses"] = [{"license": {"name": meta.license}}]
        components.append(component)

    depends_on: dict[str, list[str]] = {path: [] for path in sorted(graph.nodes)}
    for src, ref in graph.edges():
        depends_on[src].append(_bom_ref(ref))
    dependencies = [
        {"ref": _bom_ref(path), "dependsOn": refs} for path, refs in depends_on.items()
    ]
    return {
        "bomFormat": "CycloneDX",
        "specVersion": "1.5",
        "serialNumber": f"urn:uuid:{uuid.uuid4()}",
        "version": 1,
        "metadata": {
            "timestamp": datetime.now(UTC).isoformat(),
            "component": {
                "type": "container",
                "bom-ref": _bom_ref(app.store_path),
                "name": app.name,
                "version": app.version,
                "properties": [
                    {"name": "oci:os", "value": tos},
                    {"name": "oci:architecture", "value": tarch},
                    {"name": "nix:closureSize", "value": str(app.closure_size)},
                ],
            },
        },
        "components": components,
        "dependencies": dependencies,
    }


def _image_digest(result: Path) -> str | None:
    index = result / "index.json"
    return sha256(index) if index.is_file() else None


def build_provenance(
    lock: LockFile, app: AppDetails, result: Path, tos: str, tarch: str
) -> dict:
    digest = _image_digest(result)
    return {
        "_type": "https://in-toto.io/Statement/v1",
        "subject": [{"name": app.name, "digest": {"sha256": digest} if digest else {}}],
        "predicateType": "https://slsa.dev/provenance/v1",
        "predicate": {
            "buildDefinition": {
                "buildType": BUILD_TYPE,
                "externalParameters": {
                    "app": lock.app.name,
                    "platform": f"{tos}/{tarch}",
                },
                "resolvedDependencies": [
                    {
                        "name": p.package.name,
                        "annotations": {
                            "version": p.package.version,
                            "runtime": p.runtime,
                            **({"revision": p.package.revision} if p.package.revision else {}),
                        },
                    }
                    for p in sorted(lock.packages, key=lambda p: p.package.name)
                ],
            },
            "runDetails": {
                "builder": {"id": "oci-builder"},
                "metadata": {"finishedOn": datetime.now(UTC).isoformat()},
            },
        },
    }


def generate_artifacts(
    output: str,
    symlink: str,
    lock: LockFile,
    app: AppDetails,
    graph: ClosureGraph,
    tos: str,
    tarch: str,
    *,
    cwd: Path | None = None,
) -> list[Path]:
    """Write SBOM and provenance for the image behind ``<output><symlink>``."""
    outdir = (cwd or Path.cwd()) / output
    result = outdir / symlink.lstrip("/")
    documents = {
        SBOM_FILE: build_sbom(lock, app, graph, tos, tarch),
        PROVENANCE_FILE: build_provenance(lock, app, result, tos, tarch),
    }

    written: list[Path] = []
    try:
        outdir.mkdir(parents=True, exist_ok=True)
        for name, doc in documents.items():
            path = outdir / name
            path.write_text(json.dumps(doc, indent=2), encoding="utf-8")
            written += [path, write_sidecar(path)]
    except OSError as e:
        raise FileAccessError(f"cannot write attestations into {outdir}: {e}") from e

    logger.info("wrote %s", ", ".join(p.name for p in written))
    return written
