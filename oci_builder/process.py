"""Blocking execution of external tools with typed failures."""

from __future__ import annotations

import logging
import shlex
import subprocess
from pathlib import Path

from oci_builder.errors import ExternalToolError

logger = logging.getLogger(__name__)


def run_tool(
    cmd: list[str],
    *,
    cwd: Path | None = None,
    capture: bool = False,
    tool: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run *cmd* to completion and raise ExternalToolError unless it exits 0.

    Without *capture* the tool's output goes straight to the terminal.
    """
    tool = tool or Path(cmd[0]).name
    logger.info("running: %s", shlex.join(cmd), extra={"tool": tool})
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=capture,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise ExternalToolError(
            f"{tool} not found on PATH",
            tool=tool,
            hint=f"Is {tool} installed?",
        ) from e
    except OSError as e:
        raise ExternalToolError(f"failed to execute {tool}: {e}", tool=tool) from e

    if result.returncode != 0:
        detail = (result.stderr or "").strip() if capture else ""
        message = f"{tool} exited with code {result.returncode}"
        if detail:
            message = f"{message}: {detail}"
        logger.error(message, extra={"tool": tool})
        raise ExternalToolError(message, tool=tool, exit_code=result.returncode)
    return result
