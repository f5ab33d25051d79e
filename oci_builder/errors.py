"""Error taxonomy shared by every pipeline stage.

Each failure is raised as one of these and travels up to the CLI, which is the
only place that prints it and picks the exit status. `code` is a stable,
machine-readable tag; `hint` is an optional second line shown to the user.
"""

from __future__ import annotations


class OciBuilderError(Exception):
    code = "error"

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigError(OciBuilderError):
    """Malformed document, failed artifact validation or unknown label."""

    code = "config_error"


class PlatformError(OciBuilderError):
    code = "unsupported_platform"


class FileAccessError(OciBuilderError):
    """Reading or writing the document, Dockerfile or lock file failed."""

    code = "io_error"


class ExternalToolError(OciBuilderError):
    """Nix, Docker, Podman, skopeo or git reported a failure."""

    code = "external_tool"

    def __init__(
        self,
        message: str,
        *,
        tool: str,
        exit_code: int | None = None,
        hint: str | None = None,
    ) -> None:
        super().__init__(message, hint=hint)
        self.tool = tool
        self.exit_code = exit_code


class UsageError(OciBuilderError):
    """Missing or conflicting arguments; nothing stateful was attempted."""

    code = "usage"
