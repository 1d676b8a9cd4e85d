"""
Configuration Loader

Loads and validates the plugin's config.yml.
"""

import copy
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .config import DEFAULT_OPTIONS, DEFAULT_CONFIG_TEXT

logger = logging.getLogger(__name__)

# Pattern: ${VAR} or ${VAR:-default}
ENV_PATTERN = re.compile(r'\$\{([A-Z_]+)(?::-([^}]*))?\}')

TRUE_VALUES = {"true", "yes", "on", "1"}
FALSE_VALUES = {"false", "no", "off", "0"}


def load_config(config_path: Optional[Path] = None) -> Dict:
    """
    Load plugin configuration from YAML file

    Args:
        config_path: Path to config.yml (None uses defaults only)

    Returns:
        Configuration dict with the 'options' section merged over defaults
    """
    config = copy.deepcopy(DEFAULT_OPTIONS)

    if config_path is None or not config_path.exists():
        logger.info("No config file found, using defaults")
        return config

    logger.debug(f"Loading configuration from: {config_path}")

    try:
        with open(config_path, 'r') as f:
            user_config = yaml.safe_load(f)

        if not user_config:
            logger.warning(f"Config file {config_path} is empty")
            return config

        if not isinstance(user_config, dict):
            logger.error(f"Config file {config_path} must contain a mapping")
            return config

        # Process environment variable substitution
        user_config = substitute_env_vars(user_config)

        # Merge user options with defaults
        options = user_config.get('options')
        if isinstance(options, dict):
            for key, value in options.items():
                config['options'][key] = coerce_bool(value)

        return config

    except yaml.YAMLError as e:
        logger.error(f"Error parsing YAML config: {e}")
        logger.info("Falling back to defaults")
        return config
    except OSError as e:
        logger.error(f"Error loading config: {e}")
        logger.info("Falling back to defaults")
        return config


def substitute_env_vars(config: Any) -> Any:
    """
    Substitute environment variables in config values

    Handles patterns like:
    - ${ENV_VAR}
    - ${ENV_VAR:-default_value}

    Args:
        config: Configuration value (dict, list or scalar)

    Returns:
        Config with environment variables substituted
    """
    def replacer(match):
        var_name = match.group(1)
        default_value = match.group(2) or ""
        return os.environ.get(var_name, default_value)

    if isinstance(config, str):
        return ENV_PATTERN.sub(replacer, config)
    elif isinstance(config, dict):
        return {k: substitute_env_vars(v) for k, v in config.items()}
    elif isinstance(config, list):
        return [substitute_env_vars(item) for item in config]
    else:
        return config


def coerce_bool(value: Any) -> Any:
    """Turn 'true'/'false'-like strings (left over from substitution) into bools"""
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
    return value


def get_option(config: Dict, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted option path such as 'options.auto-update'

    Args:
        config: Configuration dict
        path: Dotted key path
        default: Value returned when any segment is missing

    Returns:
        The option value or default
    """
    node: Any = config
    for key in path.split('.'):
        if not isinstance(node, dict) or key not in node:
            return default
        node = node[key]
    return node


def validate_config(config: Dict) -> tuple[bool, list[str]]:
    """
    Validate configuration structure

    Args:
        config: Configuration dict to validate

    Returns:
        Tuple of (is_valid, list of error messages)
    """
    errors = []

    options = config.get('options')
    if not isinstance(options, dict):
        errors.append("Config must define an 'options' section")
        return False, errors

    for key in DEFAULT_OPTIONS['options']:
        if key not in options:
            errors.append(f"Option '{key}' is missing")
        elif not isinstance(options[key], bool):
            errors.append(f"Option '{key}' must be true or false, got {options[key]!r}")

    is_valid = len(errors) == 0
    return is_valid, errors


def save_default_config(config_path: Path) -> bool:
    """
    Write the default config.yml if none exists yet

    Args:
        config_path: Destination path

    Returns:
        True if the file exists afterwards
    """
    if config_path.exists():
        return True

    # Create directory if it doesn't exist
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            f.write(DEFAULT_CONFIG_TEXT)
    except OSError as e:
        logger.error(f"Failed to save default config: {e}")
        return False

    logger.info(f"Default configuration saved to: {config_path}")
    return True
