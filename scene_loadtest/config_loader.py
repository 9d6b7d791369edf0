"""Loader for the YAML load test configuration."""

from pathlib import Path

import yaml
from pydantic import ValidationError

from scene_loadtest.models.settings import LoadTestConfig

DEFAULT_CONFIG_FILE = "loadtest.yaml"


def load_config(path: Path) -> LoadTestConfig:
    """Load and validate a load test configuration file.

    Args:
        path: Path to the YAML configuration file

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is empty, is not valid YAML or does not match
            the configuration schema

    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty config file: {path}")

    try:
        return LoadTestConfig.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid config schema in {path}: {e}") from e
