"""Pick one OCI artifact out of the configuration document."""

from __future__ import annotations

import logging

from oci_builder.config.models import Config, OCIArtifact
from oci_builder.errors import ConfigError
from oci_builder.platforms import resolve_platform

logger = logging.getLogger(__name__)


def select_artifact(config: Config, platform: str, label: str) -> tuple[OCIArtifact, str]:
    """Return the artifact labelled *label* and the resolved platform.

    Every artifact up to the match is validated in document order and the
    first invalid one fails the whole lookup, even when the requested label
    is further down and valid. That keeps configuration mistakes visible.
    """
    resolved = resolve_platform(platform)

    labels: list[str] = []
    for candidate in config.oci:
        problem = candidate.check(config)
        if problem is not None:
            raise ConfigError(
                f"Config for oci block {candidate.name} is invalid\n Error: {problem}"
            )
        if candidate.artifact == label:
            logger.info(
                "selected artifact %r (%s) for %s",
                label,
                candidate.name,
                resolved,
                extra={"artifact": candidate.name},
            )
            return candidate.model_copy(deep=True), resolved
        labels.append(candidate.artifact)

    raise ConfigError(
        "No such artifact found. Valid oci artifacts that can be built are: "
        + ", ".join(labels)
    )
