"""YAML-based desensitize configuration loading."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from logguard.core.errors import ConfigError
from logguard.core.models import DesensitizeConfig, default_config
from logguard.core.schemas import DESENSITIZE_CONFIG_SCHEMA
from logguard.utils.validator import _validate_document

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LOGGUARD_CONFIG"
DEFAULT_CONFIG_FILE = Path(__file__).with_name("rules.yaml")

PathLike = Union[str, os.PathLike]


def resolve_config_path(path: Optional[PathLike] = None) -> Path:
    """Explicit path, else $LOGGUARD_CONFIG, else the bundled rules.yaml."""
    if path:
        return Path(path)
    env_path = os.getenv(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return DEFAULT_CONFIG_FILE


def load_config_strict(path: PathLike) -> DesensitizeConfig:
    """Load and validate a config file, raising ConfigError on any problem."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read desensitize config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Desensitize config {path} is not valid YAML: {e}") from e

    if document is None:
        document = {}

    _validate_document(document, DESENSITIZE_CONFIG_SCHEMA, where=f"Desensitize config {path}")

    try:
        return DesensitizeConfig.model_validate(document)
    except ValidationError as e:
        raise ConfigError(f"Desensitize config {path} is invalid: {e}") from e


def load_config_with_source(
    path: Optional[PathLike] = None,
) -> tuple[DesensitizeConfig, Optional[Path]]:
    """Load the config, falling back to the built-in rules instead of failing.

    Returns the config and the file it came from, or None when the built-in
    rules are in use.
    """
    config_path = resolve_config_path(path)
    if not config_path.exists():
        logger.warning("Desensitize config file not found: %s, using default config", config_path)
        return default_config(), None

    try:
        config = load_config_strict(config_path)
    except ConfigError as e:
        logger.warning("Failed to load desensitize config: %s, using default config", e)
        return default_config(), None

    logger.info(
        "Loaded desensitize config: %d rules, enabled=%s", len(config.rules), config.enabled
    )
    return config, config_path


def load_config(path: Optional[PathLike] = None) -> DesensitizeConfig:
    """Load the config, falling back to the built-in rules instead of failing."""
    config, _ = load_config_with_source(path)
    return config
