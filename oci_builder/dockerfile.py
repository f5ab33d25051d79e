"""Swap base-image tags in a Dockerfile (``oci --df-swap``)."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from pathlib import Path

from oci_builder.errors import FileAccessError
from oci_builder.reference import split_reference, with_tag

logger = logging.getLogger(__name__)

_FROM = re.compile(
    r"^(?P<lead>\s*FROM\s+(?:--\S+\s+)*)(?P<image>\S+)(?P<rest>.*)$",
    re.IGNORECASE,
)
_ALIAS = re.compile(r"\s+AS\s+(?P<alias>\S+)", re.IGNORECASE)
_DEV_MARKERS = ("dev", "build")


def _is_dev_stage(alias: str | None) -> bool:
    return alias is not None and any(m in alias.lower() for m in _DEV_MARKERS)


def modify_dockerfile(lines: Iterable[str], dev_deps: bool, tag: str) -> list[str]:
    """Return *lines* with every tagged ``FROM`` image retagged to *tag*.

    Stage references, ``scratch``, digests and build-arg substitutions are
    kept. With *dev_deps* only stages aliased like ``dev``/``build`` change.
    """
    stages: set[str] = set()
    out: list[str] = []
    for line in lines:
        m = _FROM.match(line)
        if not m:
            out.append(line)
            continue

        image = m.group("image")
        alias_match = _ALIAS.match(m.group("rest"))
        alias = alias_match.group("alias") if alias_match else None

        _, current_tag = split_reference(image)
        keep = (
            current_tag is None
            or "$" in image
            or image.lower() == "scratch"
            or image.lower() in stages
            or (dev_deps and not _is_dev_stage(alias))
        )
        if keep:
            out.append(line)
        else:
            retagged = with_tag(image, tag)
            logger.info("retagging base image %s -> %s", image, retagged)
            out.append(f"{m.group('lead')}{retagged}{m.group('rest')}")

        if alias:
            stages.add(alias.lower())
    return out


def modify_dockerfile_with_tag(directory: str, tag: str, dev_deps: bool) -> Path:
    """Rewrite ``<directory>/Dockerfile`` in place and return its path."""
    dockerfile = Path(directory) / "Dockerfile" if directory else Path("./Dockerfile")
    try:
        with open(dockerfile, encoding="utf-8", newline="") as f:
            text = f.read()
    except OSError as e:
        raise FileAccessError(f"cannot read {dockerfile}: {e}") from e
    except UnicodeDecodeError as e:
        raise FileAccessError(f"{dockerfile} is not valid UTF-8: {e}") from e

    # Each line keeps its own terminator so CRLF files stay CRLF.
    raw = text.splitlines(keepends=True)
    bodies = [line.rstrip("\r\n") for line in raw]
    endings = [line[len(body) :] for line, body in zip(raw, bodies)]
    patched = modify_dockerfile(bodies, dev_deps, tag)
    result = "".join(body + end for body, end in zip(patched, endings))

    try:
        with open(dockerfile, "w", encoding="utf-8", newline="") as f:
            f.write(result)
    except OSError as e:
        raise FileAccessError(f"cannot write {dockerfile}: {e}") from e
    return dockerfile
