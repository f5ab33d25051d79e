"""Go buildpack: ``buildGoModule`` from the gomodule block."""

from __future__ import annotations

from oci_builder.buildpacks.nixexpr import nix_bool, nix_list, nix_path, nix_str
from oci_builder.config.models import GoModule


def render(app: GoModule) -> str:
    pname = app.name.rstrip("/").rsplit("/", 1)[-1]
    vendor = nix_str(app.vendor_hash) if app.vendor_hash else "null"
    return "\n".join(
        [
            "{ pkgs }:",
            "pkgs.buildGoModule {",
            f"  pname = {nix_str(pname)};",
            '  version = "0.0.0";',
            f"  src = {nix_path(app.src)};",
            f"  vendorHash = {vendor};",
            f"  doCheck = {nix_bool(app.do_check)};",
            f"  ldflags = {nix_list(app.ldflags)};",
            f"  tags = {nix_list(app.tags)};",
            "}",
            "",
        ]
    )
