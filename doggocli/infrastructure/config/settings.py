"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.doggocli/config.yaml).
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
import yaml

from doggocli.domain.models.common import BackoffPolicy, BreakerPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".doggocli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

DEFAULT_API_BASE_URL = "http://127.0.0.1:8000/"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_TOKEN_DIR = DEFAULT_CONFIG_DIR / "tokens"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False

def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Turns nested YAML mappings into dotted keys ('api': {'base_url'} -> 'api.base_url')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat

def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values supplied by the accessor functions

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):  # ENV VARS take precedence
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no file found).")

    # 3. Environment Variables (Highest priority) are handled by os.environ in get_config

    _loaded = True
    logger.debug("Configuration loading process completed.")

def _coerce(value: str) -> Any:
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value

def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (DOGGOCLI_ prefix, dots become underscores)
    3. YAML config
    4. Default value

    Args:
        key: The configuration key, e.g. 'api.base_url'
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = f"DOGGOCLI_{key.upper().replace('.', '_')}"
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    logger.debug(f"Config key '{key}' not found in environment or loaded config. Returning default: {default}")
    return default

def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    try:
        cwd = Path.cwd()
        for path in [cwd] + list(cwd.parents):
            env_path = path / ENV_FILE_NAME
            if env_path.is_file():
                return env_path
    except OSError as e:
        logger.warning(f"Error searching for .env file: {e}")
    return None

# --- Convenience Functions ---

def get_api_base_url() -> str:
    """Backend root URL. DOGGO_API_BASE_URL wins over the config file."""
    url = os.environ.get('DOGGO_API_BASE_URL') or get_config('api.base_url', DEFAULT_API_BASE_URL)
    return str(url)

def get_request_timeout() -> float:
    return float(get_config('api.timeout_seconds', DEFAULT_TIMEOUT_SECONDS))

def get_backoff_policy() -> BackoffPolicy:
    return BackoffPolicy(
        max_retries=int(get_config('resilience.retry.max_retries', 3)),
        initial_delay=float(get_config('resilience.retry.initial_delay_seconds', 1.0)),
        factor=float(get_config('resilience.retry.factor', 2.0)),
    )

def get_breaker_policy() -> BreakerPolicy:
    return BreakerPolicy(
        failure_threshold=int(get_config('resilience.breaker.failure_threshold', 5)),
        break_duration=float(get_config('resilience.breaker.break_seconds', 30.0)),
    )

def get_token_store_dir() -> Path:
    return Path(str(get_config('storage.token_dir', DEFAULT_TOKEN_DIR))).expanduser()

def get_aggregation_concurrency() -> int:
    """In-flight rating fetches during aggregation; 0 means unbounded."""
    return int(get_config('aggregation.max_concurrency', 8))

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
