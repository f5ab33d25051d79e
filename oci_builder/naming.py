"""Flake attribute names for the OCI image outputs."""

from __future__ import annotations

from oci_builder.config.models import PKGS_ARTIFACT

UNKNOWN_ARCH = "unknown"

NIX_SYSTEMS = {
    "linux/amd64": "x86_64-linux",
    "linux/arm64": "aarch64-linux",
}


def arch_for_platform(platform: str) -> str:
    return NIX_SYSTEMS.get(platform, UNKNOWN_ARCH)


def image_suffix(label: str, dev_deps: bool) -> str:
    if label == PKGS_ARTIFACT:
        return "dev-as-dir" if dev_deps else "runtime-as-dir"
    return "app_with_dev-as-dir" if dev_deps else "app-as-dir"


def oci_attr_name(label: str, platform: str, dev_deps: bool, workdir: str = "ocib") -> str:
    """``<workdir>/.#ociImages.<system>.ociImage_<label>_<suffix>``.

    Never fails: an unmapped platform yields the ``unknown`` system, which
    callers must treat as an error.
    """
    system = arch_for_platform(platform)
    return f"{workdir}/.#ociImages.{system}.ociImage_{label}_{image_suffix(label, dev_deps)}"
