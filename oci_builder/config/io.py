"""Read and write the ``ocib.yaml`` configuration document.

Writes always serialize the whole document; comments and hand formatting in
the original file are not carried over.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from oci_builder.config.models import Config, OCIArtifact
from oci_builder.errors import ConfigError, FileAccessError
from oci_builder.validator import config_errors

logger = logging.getLogger(__name__)


def load_yaml(path: Path) -> dict[str, Any]:
    """Load *path* as a YAML mapping; an empty file yields ``{}``."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise FileAccessError(f"cannot read {path}: {e}") from e
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path} is not valid UTF-8: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"{path} is not valid YAML:\n{e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a YAML mapping, got {type(data).__name__}")
    return data


def parse_config(data: dict[str, Any], source: str = "ocib.yaml") -> Config:
    problems = config_errors(data)
    if problems:
        raise ConfigError(f"{source} does not match the schema:\n  " + "\n  ".join(problems))
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"{source} is invalid:\n{e}") from e


def read_config(path: Path) -> Config:
    config = parse_config(load_yaml(path), source=path.name)
    logger.info("loaded %s with %d oci artifact(s)", path, len(config.oci))
    return config


def dump_config(config: Config) -> str:
    return yaml.safe_dump(config.to_document(), sort_keys=False, default_flow_style=False)


def write_config(config: Config, path: Path) -> None:
    try:
        path.write_text(dump_config(config), encoding="utf-8")
    except OSError as e:
        raise FileAccessError(f"cannot write {path}: {e}") from e


def modify_config(old_name: str, artifact: OCIArtifact, config: Config, path: Path) -> bool:
    """Swap the first artifact named *old_name* for *artifact* and persist.

    Nothing is written, and no error raised, when no artifact carries
    *old_name*. Returns whether the document was rewritten.
    """
    for i, existing in enumerate(config.oci):
        if existing.name == old_name:
            config.oci[i] = artifact
            break
    else:
        logger.info("no oci artifact named %r; %s left untouched", old_name, path)
        return False

    write_config(config, path)
    logger.info("rewrote %s: %r -> %r", path, old_name, artifact.name)
    return True
