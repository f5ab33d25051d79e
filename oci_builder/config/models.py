"""Pydantic models for the ``ocib.yaml`` document.

Keys in the document are camelCase; attributes are snake_case. Models accept
either form on input and always emit the aliases on output.
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, model_validator

PKGS_ARTIFACT = "pkgs"

_ENV_VAR = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*=.*$", re.DOTALL)
_PORT = re.compile(r"^(?P<port>\d+)(?:/(?P<proto>tcp|udp))?$")


class _Block(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class Packages(_Block):
    development: list[str] = Field(default_factory=list)
    runtime: list[str] = Field(default_factory=list)

    def names(self) -> set[str]:
        """Package names without their ``@version`` pin."""
        return {p.split("@", 1)[0] for p in (*self.development, *self.runtime)}


class GoModule(_Block):
    name: str
    src: str = "./."
    ldflags: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    do_check: bool = Field(default=False, alias="doCheck")
    vendor_hash: str | None = Field(default=None, alias="vendorHash")


class PoetryApp(_Block):
    project_dir: str = Field(default="./.", alias="projectDir")
    python: str = "python3"
    check_groups: list[str] = Field(default_factory=list, alias="checkGroups")
    prefer_wheels: bool = Field(default=False, alias="preferWheels")


class RustApp(_Block):
    workspace_src: str = Field(default="./.", alias="workspaceSrc")
    crate_name: str = Field(alias="crateName")
    rust_version: str = Field(default="", alias="rustVersion")
    rust_toolchain: str = Field(default="", alias="rustToolChain")
    rust_channel: str = Field(default="", alias="rustChannel")
    rust_profile: str = Field(default="", alias="rustProfile")
    release: bool = True
    extra_rust_components: list[str] = Field(default_factory=list, alias="extraRustComponents")


class JsNpmApp(_Block):
    package_json_path: str = Field(default="./package.json", alias="packageJsonPath")
    package_lock_path: str = Field(default="./package-lock.json", alias="packageLockPath")
    npm_deps_hash: str | None = Field(default=None, alias="npmDepsHash")


class ConfigFiles(_Block):
    name: str
    path: str
    dest: str


class GitHubRelease(_Block):
    app: str
    owner: str
    repo: str
    dir: str | None = None


class OCIArtifact(_Block):
    artifact: str
    name: str
    cmd: list[str] = Field(default_factory=list)
    entrypoint: list[str] = Field(default_factory=list)
    env_vars: list[str] = Field(default_factory=list, alias="envVars")
    exposed_ports: list[str] = Field(default_factory=list, alias="exposedPorts")
    import_configs: list[str] = Field(default_factory=list, alias="importConfigs")
    layers: list[str] = Field(default_factory=list)

    def check(self, config: Config) -> str | None:
        """Validate this artifact against the whole document.

        Returns a message describing the first problem, or None.
        """
        if not self.name.strip():
            return "name cannot be empty"
        if not self.artifact.strip():
            return "artifact label cannot be empty"
        if self.artifact != PKGS_ARTIFACT and config.app() is None:
            return (
                f"artifact {self.artifact!r} builds an application but no "
                "gomodule, poetryapp, rustapp or jsnpmapp block is defined"
            )
        for env in self.env_vars:
            if not _ENV_VAR.match(env):
                return f"envVars entry {env!r} must be in KEY=VALUE form"
        for port in self.exposed_ports:
            m = _PORT.match(port)
            if not m or not 0 < int(m.group("port")) < 65536:
                return f"exposedPorts entry {port!r} must be PORT or PORT/tcp|udp"
        declared = {c.name for c in config.config}
        for ref in self.import_configs:
            if ref not in declared:
                return f"importConfigs references undefined config block {ref!r}"
        packages = config.packages.names()
        for layer in self.layers:
            if layer.split("@", 1)[0] not in packages:
                return f"layer {layer!r} is not listed in packages"
        return None


AppBlock = GoModule | PoetryApp | RustApp | JsNpmApp


class Config(_Block):
    packages: Packages = Field(default_factory=Packages)
    gomodule: GoModule | None = None
    poetryapp: PoetryApp | None = None
    rustapp: RustApp | None = None
    jsnpmapp: JsNpmApp | None = None
    oci: list[OCIArtifact] = Field(default_factory=list)
    config: list[ConfigFiles] = Field(default_factory=list)
    github_releases: list[GitHubRelease] = Field(default_factory=list, alias="githubRelease")

    @model_validator(mode="after")
    def _single_ecosystem(self) -> Config:
        present = [
            key
            for key in ("gomodule", "poetryapp", "rustapp", "jsnpmapp")
            if getattr(self, key) is not None
        ]
        if len(present) > 1:
            raise ValueError(
                f"only one application block is allowed, found: {', '.join(present)}"
            )
        return self

    def app(self) -> AppBlock | None:
        return self.gomodule or self.poetryapp or self.rustapp or self.jsnpmapp

    def to_document(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
