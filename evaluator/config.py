"""
Configuration loader
"""
import os
from pathlib import Path
from typing import Optional

import yaml

from evaluator.models import Settings


DEFAULT_CONFIG_PATH = "config/evaluator.yaml"
CONFIG_ENV_VAR = "EVALUATOR_CONFIG"


def config_path_from_env() -> str:
    return os.getenv(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)


def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to config file (default: $EVALUATOR_CONFIG or
                     config/evaluator.yaml)

    Returns:
        Settings object

    Raises:
        FileNotFoundError: If the config file does not exist
    """
    path = Path(config_path or config_path_from_env())

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    return Settings(**data)
