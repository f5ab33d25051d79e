"""Image reference helpers (``[host[:port]/]repo[:tag][@digest]``)."""

from __future__ import annotations


def split_reference(ref: str) -> tuple[str, str | None]:
    """Split *ref* into repository and tag.

    The tag separator is the last ``:`` after the last ``/``, so a registry
    port is never mistaken for a tag. A ``@digest`` stays with the repository.
    """
    if "@" in ref:
        return ref, None
    slash = ref.rfind("/")
    colon = ref.rfind(":")
    if colon > slash:
        return ref[:colon], ref[colon + 1 :]
    return ref, None


def with_tag(ref: str, tag: str) -> str:
    """Return *ref* tagged *tag*; any existing tag or digest is dropped."""
    repo, _ = split_reference(ref.split("@", 1)[0])
    return f"{repo}:{tag}"
