"""Apply a ``--tag`` override to an artifact and persist it."""

from __future__ import annotations

from pathlib import Path

from oci_builder.config.io import modify_config
from oci_builder.config.models import Config, OCIArtifact
from oci_builder.reference import with_tag


def new_name(artifact: OCIArtifact, tag: str) -> str:
    """``app`` + ``v2`` -> ``app:v2``; ``app:v1`` + ``v2`` -> ``app:v2``."""
    return with_tag(artifact.name, tag)


def apply_tag(config: Config, artifact: OCIArtifact, tag: str, path: Path) -> OCIArtifact:
    old_name = artifact.name
    updated = artifact.model_copy(update={"name": new_name(artifact, tag)})
    modify_config(old_name, updated, config, path)
    return updated
