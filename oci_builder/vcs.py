"""The two git operations the build needs: stage a path, ignore a path.

Nix flakes only see files tracked by git, so the generated directory has to
be staged before ``nix build`` runs.
"""

from __future__ import annotations

import logging
from pathlib import Path

from oci_builder.errors import FileAccessError
from oci_builder.process import run_tool

logger = logging.getLogger(__name__)


def add(path: str, *, cwd: Path, git_bin: str = "git") -> None:
    run_tool([git_bin, "add", "--", path], cwd=cwd, tool="git")


def ignore(path: str, *, cwd: Path) -> bool:
    """Append *path* to ``.gitignore`` unless already listed.

    Returns whether the file changed.
    """
    gitignore = cwd / ".gitignore"
    try:
        existing = gitignore.read_text(encoding="utf-8") if gitignore.exists() else ""
    except OSError as e:
        raise FileAccessError(f"cannot read {gitignore}: {e}") from e

    entries = {line.strip() for line in existing.splitlines()}
    if path in entries or path.rstrip("/") in entries:
        return False

    prefix = "" if not existing or existing.endswith("\n") else "\n"
    try:
        with open(gitignore, "a", encoding="utf-8") as f:
            f.write(f"{prefix}{path}\n")
    except OSError as e:
        raise FileAccessError(f"cannot write {gitignore}: {e}") from e
    logger.info("added %s to %s", path, gitignore)
    return True
