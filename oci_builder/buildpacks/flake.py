"""Render the generated ``flake.nix``.

The flake exposes ``ociImages.<system>.ociImage_<label>_<suffix>`` for every
oci block, both supported systems and both dependency variants, so that any
attribute produced by ``naming.oci_attr_name`` exists.
"""

from __future__ import annotations

from collections.abc import Mapping
from posixpath import dirname

from oci_builder.buildpacks.nixexpr import nix_list, nix_path, nix_str, package_attr
from oci_builder.config.models import PKGS_ARTIFACT, Config, OCIArtifact
from oci_builder.naming import NIX_SYSTEMS, image_suffix
from oci_builder.reference import split_reference

NIXPKGS_URL = "github:NixOS/nixpkgs/nixos-unstable"

_AS_DIR = [
    "          asDir = image: pkgs.runCommand \"${image.imageName}-as-dir\" { } ''",
    "            ${pkgs.skopeo}/bin/skopeo --insecure-policy --tmpdir $TMPDIR \\",
    "              copy docker-archive:${image} oci:$out",
    "          '';",
]


def _package_list(specs: list[str]) -> str:
    names = " ".join(package_attr(s) for s in specs)
    return f"pkgs: with pkgs; [ {names} ]" if names else "pkgs: [ ]"


def _contents(artifact: OCIArtifact, dev_deps: bool) -> str:
    parts = ["(runtimePackages pkgs)"]
    if artifact.artifact != PKGS_ARTIFACT:
        parts.insert(0, "[ (app pkgs) ]")
    if dev_deps:
        parts.append("(devPackages pkgs)")
    return " ++ ".join(parts)


def _image_config(artifact: OCIArtifact) -> list[str]:
    lines = []
    if artifact.cmd:
        lines.append(f"            Cmd = {nix_list(artifact.cmd)};")
    if artifact.entrypoint:
        lines.append(f"            Entrypoint = {nix_list(artifact.entrypoint)};")
    if artifact.env_vars:
        lines.append(f"            Env = {nix_list(artifact.env_vars)};")
    if artifact.exposed_ports:
        ports = " ".join(
            f"{nix_str(p if '/' in p else p + '/tcp')} = {{ }};" for p in artifact.exposed_ports
        )
        lines.append(f"            ExposedPorts = {{ {ports} }};")
    return lines


def _extra_commands(artifact: OCIArtifact, config: Config) -> list[str]:
    files = {c.name: c for c in config.config}
    cmds = []
    for ref in artifact.import_configs:
        entry = files.get(ref)
        if entry is None:
            continue
        dest = entry.dest.lstrip("/")
        parent = dirname(dest)
        if parent:
            cmds.append(f"            mkdir -p {parent}")
        cmds.append(f"            cp -r ${{{nix_path(entry.path)}}} {dest}")
    if not cmds:
        return []
    return ["          extraCommands = ''", *cmds, "          '';"]


def _image(artifact: OCIArtifact, config: Config, dev_deps: bool) -> list[str]:
    repo, tag = split_reference(artifact.name)
    attr = f"ociImage_{artifact.artifact}_{image_suffix(artifact.artifact, dev_deps)}"
    return [
        f"        {nix_str(attr)} = asDir (pkgs.dockerTools.buildLayeredImage {{",
        f"          name = {nix_str(repo)};",
        f"          tag = {nix_str(tag or 'latest')};",
        f"          contents = {_contents(artifact, dev_deps)};",
        "          config = {",
        *_image_config(artifact),
        "          };",
        *_extra_commands(artifact, config),
        "        });",
    ]


def render_flake(config: Config, inputs: Mapping[str, str], app_args: str | None) -> str:
    input_names = ["nixpkgs", *inputs]
    lines = [
        "{",
        '  description = "Generated by oci-builder; edit ocib.yaml instead";',
        "",
        "  inputs = {",
        f"    nixpkgs.url = {nix_str(NIXPKGS_URL)};",
        *(f"    {name}.url = {nix_str(url)};" for name, url in inputs.items()),
        "  };",
        "",
        f"  outputs = {{ self, {', '.join(input_names)} }}:",
        "    let",
        f"      systems = {nix_list(NIX_SYSTEMS.values())};",
        "      forEachSystem = f: nixpkgs.lib.genAttrs systems",
        "        (system: f (import nixpkgs { inherit system; }));",
        f"      runtimePackages = {_package_list(config.packages.runtime)};",
        f"      devPackages = {_package_list(config.packages.development)};",
    ]
    if app_args is not None:
        lines.append(f"      app = pkgs: import ./default.nix {app_args};")
    lines += [
        "    in",
        "    {",
        "      devShells = forEachSystem (pkgs: {",
        "        default = pkgs.mkShell { packages = (devPackages pkgs) ++ (runtimePackages pkgs); };",
        "      });",
    ]
    if app_args is not None:
        lines.append("      packages = forEachSystem (pkgs: { default = app pkgs; });")
    lines += [
        "      ociImages = forEachSystem (pkgs:",
        "        let",
        *_AS_DIR,
        "        in",
        "        {",
    ]
    for artifact in config.oci:
        for dev_deps in (False, True):
            lines += _image(artifact, config, dev_deps)
    lines += [
        "        });",
        "    };",
        "}",
        "",
    ]
    return "\n".join(lines)
