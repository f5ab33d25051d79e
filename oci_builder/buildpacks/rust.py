"""Rust buildpack: a cargo2nix package set built from ``Cargo.nix``."""

from __future__ import annotations

from oci_builder.buildpacks.nixexpr import nix_bool, nix_list, nix_path, nix_str
from oci_builder.config.models import RustApp

FLAKE_INPUTS = {"cargo2nix": "github:cargo2nix/cargo2nix/release-0.11.0"}


def render(app: RustApp) -> str:
    lines = [
        "{ pkgs, cargo2nix }:",
        "let",
        "  rustPkgs = (import pkgs.path {",
        "    inherit (pkgs) system;",
        "    overlays = [ cargo2nix.overlays.default ];",
        "  }).rustBuilder.makePackageSet {",
        f"    packageFun = import {nix_path(app.workspace_src)}/Cargo.nix;",
        f"    release = {nix_bool(app.release)};",
    ]
    optional = {
        "rustVersion": app.rust_version,
        "rustToolchain": app.rust_toolchain,
        "rustChannel": app.rust_channel,
        "rustProfile": app.rust_profile,
    }
    lines += [f"    {key} = {nix_str(value)};" for key, value in optional.items() if value]
    if app.extra_rust_components:
        lines.append(f"    extraRustComponents = {nix_list(app.extra_rust_components)};")
    lines += [
        "  };",
        "in",
        f"(rustPkgs.workspace.{nix_str(app.crate_name)} {{ }})",
        "",
    ]
    return "\n".join(lines)
