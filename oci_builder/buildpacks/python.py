"""Python buildpack.

Turns the poetryapp block into a ``mkPoetryApplication`` call. poetry2nix is
added to the flake inputs when this buildpack is used.
"""

from __future__ import annotations

from oci_builder.buildpacks.nixexpr import nix_bool, nix_list, nix_path
from oci_builder.config.models import PoetryApp

FLAKE_INPUTS = {"poetry2nix": "github:nix-community/poetry2nix"}


def render(app: PoetryApp) -> str:
    return "\n".join(
        [
            "{ pkgs, poetry2nix }:",
            "let",
            "  inherit (poetry2nix.lib.mkPoetry2Nix { inherit pkgs; }) mkPoetryApplication;",
            "in",
            "mkPoetryApplication {",
            f"  projectDir = {nix_path(app.project_dir)};",
            f"  python = pkgs.{app.python};",
            f"  preferWheels = {nix_bool(app.prefer_wheels)};",
            f"  checkGroups = {nix_list(app.check_groups)};",
            "}",
            "",
        ]
    )
