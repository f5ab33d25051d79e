"""Node buildpack: ``buildNpmPackage`` over the project's package.json."""

from __future__ import annotations

from oci_builder.buildpacks.nixexpr import nix_path, nix_str
from oci_builder.config.models import JsNpmApp


def render(app: JsNpmApp) -> str:
    package_json = nix_path(app.package_json_path)
    deps_hash = nix_str(app.npm_deps_hash) if app.npm_deps_hash else "pkgs.lib.fakeHash"
    return "\n".join(
        [
            "{ pkgs }:",
            "let",
            f"  manifest = pkgs.lib.importJSON {package_json};",
            "in",
            "pkgs.buildNpmPackage {",
            "  pname = manifest.name;",
            '  version = manifest.version or "0.0.0";',
            f"  src = builtins.dirOf {package_json};",
            f"  npmDepsHash = {deps_hash};",
            "}",
            "",
        ]
    )
