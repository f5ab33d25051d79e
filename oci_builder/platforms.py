"""Target platform normalization and the supported-platform allowlist."""

from __future__ import annotations

import platform as _platform
import sys

from oci_builder.errors import PlatformError

SUPPORTED_PLATFORMS: tuple[str, ...] = ("linux/amd64", "linux/arm64")

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "i386": "386",
    "i686": "386",
}

_OS_ALIASES = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
}


def host_platform() -> tuple[str, str]:
    """Return the host ``(os, arch)`` using OCI/Go vocabulary."""
    os_name = _OS_ALIASES.get(sys.platform, sys.platform)
    machine = _platform.machine().lower()
    return os_name, _ARCH_ALIASES.get(machine, machine)


def find_platform(value: str) -> tuple[str, str]:
    """Split ``os/arch`` into its parts; an empty value means the host."""
    if not value:
        return host_platform()
    os_name, _, rest = value.partition("/")
    arch = rest.split("/", 1)[0]
    return os_name, arch


def resolve_platform(value: str) -> str:
    """Return the canonical platform string for *value* or raise PlatformError.

    A value is accepted when it contains one of SUPPORTED_PLATFORMS, so
    ``linux/amd64/v3`` passes.
    """
    requested = value
    if not value:
        os_name, arch = host_platform()
        value = f"{os_name}/{arch}"

    if not any(sp in value for sp in SUPPORTED_PLATFORMS):
        raise PlatformError(
            f"Platform {requested or value} is not supported. "
            f"Supported platforms are {', '.join(SUPPORTED_PLATFORMS)}"
        )
    return value
