"""Integrity helpers: SHA-256 digests and ``.sha256`` sidecar files."""

from __future__ import annotations

import hashlib
from pathlib import Path


def sha256(path: Path) -> str:
    """Return the hex SHA-256 of *path*."""
    h = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(1024 * 1024), b""):
            h.update(chunk)
    return h.hexdigest()


def write_sidecar(path: Path) -> Path:
    """Write ``<path>.sha256`` holding the hex digest of *path*."""
    sidecar = path.with_name(path.name + ".sha256")
    sidecar.write_text(sha256(path), encoding="utf-8")
    return sidecar
