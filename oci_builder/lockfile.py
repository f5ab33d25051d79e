"""Typed model of ``ocib.lock``, the snapshot written by the build step."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oci_builder.errors import ConfigError, FileAccessError


class _LockModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LockApp(_LockModel):
    name: str
    entrypoint: str | None = None


class PackageVersion(_LockModel):
    name: str
    version: str
    revision: str | None = None
    description: str | None = None
    homepage: str | None = None
    license: str | None = None


class LockPackage(_LockModel):
    package: PackageVersion
    runtime: bool = False


class LockFile(_LockModel):
    app: LockApp
    packages: list[LockPackage] = Field(default_factory=list)

    def runtime_packages(self) -> list[PackageVersion]:
        return [p.package for p in self.packages if p.runtime]


def read_lockfile(path: Path) -> LockFile:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileAccessError(f"cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} is corrupt: {e}") from e
    try:
        return LockFile.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as e:
        raise ConfigError(f"{path} is corrupt: {e}") from e
