"""Write the nix initializers for a configuration into the generated dir."""

from __future__ import annotations

import logging
from pathlib import Path

from oci_builder.buildpacks import go, node, python, rust
from oci_builder.buildpacks.flake import render_flake
from oci_builder.config.models import Config
from oci_builder.errors import FileAccessError

logger = logging.getLogger(__name__)


def render_app(config: Config) -> tuple[str | None, dict[str, str], str | None]:
    """Return ``(default.nix text, extra flake inputs, import arguments)``."""
    if config.gomodule:
        return go.render(config.gomodule), {}, "{ inherit pkgs; }"
    if config.poetryapp:
        return (
            python.render(config.poetryapp),
            python.FLAKE_INPUTS,
            "{ inherit pkgs; poetry2nix = poetry2nix; }",
        )
    if config.rustapp:
        return rust.render(config.rustapp), rust.FLAKE_INPUTS, "{ inherit pkgs; cargo2nix = cargo2nix; }"
    if config.jsnpmapp:
        return node.render(config.jsnpmapp), {}, "{ inherit pkgs; }"
    return None, {}, None


def generate(config: Config, workdir: Path) -> list[Path]:
    """Render ``flake.nix`` (and ``default.nix`` for apps) into *workdir*."""
    default_nix, inputs, app_args = render_app(config)
    files = {"flake.nix": render_flake(config, inputs, app_args)}
    if default_nix is not None:
        files["default.nix"] = default_nix

    written: list[Path] = []
    try:
        workdir.mkdir(parents=True, exist_ok=True)
        for name, text in files.items():
            path = workdir / name
            path.write_text(text, encoding="utf-8")
            written.append(path)
    except OSError as e:
        raise FileAccessError(f"cannot write initializers into {workdir}: {e}") from e

    logger.info("generated %s", ", ".join(p.name for p in written))
    return written
