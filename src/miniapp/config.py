"""Configuration loading for miniapp."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from .exceptions import InvalidArgumentsError
from .models import MiniAppConfig

CONFIG_FILE_NAME = ".miniapp.yaml"


def load_config(project_dir: Path, base: MiniAppConfig) -> MiniAppConfig:
    """Apply overrides from ``.miniapp.yaml`` in the project directory.

    Args:
        project_dir: Directory containing the .xcodeproj
        base: Configuration built by the entry point

    Returns:
        ``base`` unchanged when there is no config file, otherwise a merged copy

    Raises:
        InvalidArgumentsError: If the file cannot be parsed or validated
    """
    config_path = Path(project_dir) / CONFIG_FILE_NAME
    if not config_path.exists():
        return base

    try:
        with config_path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        msg = f"Failed to parse {config_path}: {e}"
        raise InvalidArgumentsError(msg) from e
    except OSError as e:
        msg = f"Failed to read {config_path}: {e}"
        raise InvalidArgumentsError(msg) from e

    if data is None:
        return base
    if not isinstance(data, dict):
        msg = f"{config_path} must contain a mapping"
        raise InvalidArgumentsError(msg, details={"path": str(config_path)})

    # The release version always comes from the running tool.
    data.pop("version", None)

    try:
        return MiniAppConfig.model_validate({**base.model_dump(), **data})
    except ValidationError as e:
        msg = f"Invalid configuration in {config_path}: {e}"
        raise InvalidArgumentsError(msg, details={"path": str(config_path)}) from e
