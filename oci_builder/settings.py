"""Runtime settings for oci-builder.

Loaded from ``OCIB_``-prefixed environment variables (and an optional ``.env``
file). Precedence: CLI flags > environment > defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_docker_config_dir() -> Path:
    return Path.home() / ".docker"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="OCIB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Project files, relative to the project root
    config_file: str = Field(default="ocib.yaml", description="Declarative build document")
    lock_file: str = Field(default="ocib.lock", description="Lock file written by the build step")
    workdir: str = Field(default="ocib", description="Directory holding generated nix files")
    default_output: str = Field(default="ocib-result", description="Build output directory")
    result_symlink: str = Field(default="/result", description="Symlink created under output")

    # External tools
    nix_bin: str = "nix"
    git_bin: str = "git"
    podman_bin: str = "podman"
    skopeo_bin: str = "skopeo"

    # Docker daemon discovery
    docker_config_dir: Path = Field(default_factory=_default_docker_config_dir)
    default_docker_host: str = "unix:///var/run/docker.sock"
    docker_timeout: float = Field(default=300.0, gt=0)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"


def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
