"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.mergebot/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from mergebot.domain.errors import ConfigurationError
from mergebot.domain.models.common import AuthToken, RetryPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".mergebot"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
DEFAULT_POLL_INTERVAL_SECONDS = 30.0
RAW_STRING_PREFIX = "gitlab."

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. YAML file (lowest priority)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(yaml_config)
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    # 3. Environment variables are read lazily by get_config

    _loaded = True
    logger.info("Configuration loading process completed.")


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration() reads again."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _env_name(key: str) -> str:
    return key.upper().replace(".", "_")


def _coerce(value: str) -> Any:
    if value.lower() == "true":
        return True
    if value.lower() == "false":
        return False
    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        return value


def _lookup(config: Dict[str, Any], key: str) -> Any:
    """Finds a flat key ('retry.max_attempts') or walks nested YAML sections."""
    if key in config:
        return config[key]
    node: Any = config
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if set)
    2. Environment variable (dots become underscores, upper-cased)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'retry.max_attempts'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = _env_name(key)
    if env_key in os.environ:
        value = os.environ[env_key]
        # Connection settings (URL, token) are opaque strings
        return value if key.startswith(RAW_STRING_PREFIX) else _coerce(value)

    value = _lookup(_config, key)
    if value is not None:
        return value

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_gitlab_url() -> str:
    """Base URL of the GitLab instance (env GITLAB_URL or yaml gitlab.url)."""
    url = get_config("gitlab.url")
    if not url:
        raise ConfigurationError("GitLab URL not configured. Set GITLAB_URL or gitlab.url in config.yaml.")
    return str(url).rstrip("/")


def get_auth_token() -> AuthToken:
    """Private token (env GITLAB_AUTH_TOKEN or yaml gitlab.auth_token)."""
    token = get_config("gitlab.auth_token")
    if not token:
        raise ConfigurationError(
            "GitLab token not configured. Set GITLAB_AUTH_TOKEN or gitlab.auth_token in config.yaml."
        )
    return AuthToken(str(token))


def get_retry_policy() -> RetryPolicy:
    """Builds the request retry policy, falling back to RetryPolicy defaults."""
    defaults = RetryPolicy()
    try:
        return RetryPolicy(
            max_attempts=int(get_config("retry.max_attempts", defaults.max_attempts)),
            backoff_seconds=float(get_config("retry.backoff_seconds", defaults.backoff_seconds)),
            request_timeout_seconds=float(
                get_config("http.timeout_seconds", defaults.request_timeout_seconds)
            ),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid retry configuration: {e}") from e


def get_poll_interval() -> float:
    """Seconds between polls in watch mode."""
    try:
        interval = float(get_config("watch.interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid watch.interval_seconds: {e}") from e
    if interval <= 0:
        raise ConfigurationError(f"watch.interval_seconds must be positive, got {interval}")
    return interval


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
