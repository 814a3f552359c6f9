"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables and a YAML
configuration file (~/.domainiq/config.yaml). Nested YAML mappings are
flattened to dotted keys, so

    queue:
      per_window_limit: 10

is read with get_config('queue.per_window_limit') and can be overridden by
the DOMAINIQ_QUEUE_PER_WINDOW_LIMIT environment variable.
"""

import logging
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from domainiq.domain.models.queue import QueueSettings

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".domainiq"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "DOMAINIQ_"

PROVIDER_GEMINI = "gemini"
PROVIDER_OPENAI = "openai"
PROVIDER_GROQ = "groq"
PROVIDER_NONE = "none"
PROVIDERS = (PROVIDER_GEMINI, PROVIDER_OPENAI, PROVIDER_GROQ, PROVIDER_NONE)

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def flatten(mapping: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested mappings into dotted keys."""
    flat: Dict[str, Any] = {}
    for key, value in mapping.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False
) -> None:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Test overrides
    2. Environment Variables
    3. .env file (never overrides variables already set)
    4. YAML configuration file
    5. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def env_var_name(key: str) -> str:
    return ENV_PREFIX + key.upper().replace(".", "_")


def coerce_env_value(value: str) -> Any:
    """Converts 'true'/'false' and numeric strings from the environment."""
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


def get_config(key: str, default: Any = None) -> Any:
    """Gets a configuration value by (dotted) key.

    Args:
        key: The configuration key, e.g. 'queue.max_retries'.
        default: Default value if the key is not found.
    """
    if key in _test_config:
        return _test_config[key]

    for env_key in (env_var_name(key), key.upper()):
        if env_key in os.environ:
            return coerce_env_value(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


# --- Convenience Functions ---

def _secret(*keys: str) -> Optional[str]:
    for key in keys:
        value = get_config(key)
        if value:
            return str(value)
    return None


def get_gemini_api_key() -> Optional[str]:
    # ENV GEMINI_API_KEY first, then yaml gemini.api_key
    return _secret("GEMINI_API_KEY", "gemini.api_key")


def get_openai_api_key() -> Optional[str]:
    return _secret("OPENAI_API_KEY", "openai.api_key")


def get_groq_api_key() -> Optional[str]:
    return _secret("GROQ_API_KEY", "groq.api_key")


def get_api_key(provider: str) -> Optional[str]:
    getters = {
        PROVIDER_GEMINI: get_gemini_api_key,
        PROVIDER_OPENAI: get_openai_api_key,
        PROVIDER_GROQ: get_groq_api_key,
    }
    getter = getters.get(provider)
    return getter() if getter else None


def get_default_provider() -> str:
    """Gets the configured provider name ('gemini' unless set)."""
    provider = str(get_config("ai.provider", PROVIDER_GEMINI)).lower()
    if provider not in PROVIDERS:
        logger.warning(f"Unknown provider '{provider}' in configuration. Using '{PROVIDER_GEMINI}'.")
        return PROVIDER_GEMINI
    return provider


def get_default_model(provider: Optional[str] = None) -> Optional[str]:
    """Gets the configured model for a provider, or None for its default."""
    selected_provider = provider or get_default_provider()
    model = get_config(f"ai.{selected_provider}.model")
    return str(model) if model is not None else None


def get_provider_timeout() -> float:
    return float(get_config("ai.timeout_seconds", 30.0))


def get_queue_settings() -> QueueSettings:
    """Builds QueueSettings from 'queue.<field>' keys, defaulting per field.

    Raises:
        ValueError: If a configured value is invalid.
    """
    overrides: Dict[str, Any] = {}
    for settings_field in fields(QueueSettings):
        value = get_config(f"queue.{settings_field.name}")
        if value is not None:
            overrides[settings_field.name] = value
    if overrides:
        logger.debug(f"Queue settings overrides: {overrides}")
    return QueueSettings(**overrides)


def get_log_level() -> str:
    return str(get_config("logging.level", "WARNING")).upper()


def get_log_file() -> Optional[str]:
    log_file = get_config("logging.file")
    return str(log_file) if log_file else None


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Sets configuration values that override every other source."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clears all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")


# Load configuration when the module is imported
load_configuration()
