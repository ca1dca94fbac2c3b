"""Configuration manager for loading and managing configuration.

This module provides the main configuration loading functionality, including
support for JSON configuration files, environment variable overrides, and
configuration validation.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from saml_sp.config.defaults import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH
from saml_sp.config.schema import Config
from saml_sp.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# Environment variable prefix for all configuration overrides
ENV_PREFIX = "SAML_SP_"

# Environment variable suffix -> (section, field)
_ENV_OVERRIDES = {
    "ACS_URL": ("service_provider", "assertion_consumer_service_url"),
    "ENTITY_ID": ("service_provider", "entity_id"),
    "BINDING": ("service_provider", "binding"),
    "IDP_ENTITY_ID": ("identity_provider", "entity_id"),
    "IDP_SSO_URL": ("identity_provider", "sso_url"),
    "IDP_SIGNING_KEY_PATH": ("identity_provider", "signing_key_path"),
    "IDP_SIGNING_CERTIFICATE": ("identity_provider", "signing_certificate"),
    "EXPECTED_AUDIENCE": ("validation", "expected_audience"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FILE": ("logging", "log_file"),
    "REDACT": ("logging", "redact"),
}


def load_config(config_path: Optional[Path] = None) -> Config:
    """Load configuration from file and environment variables.

    Configuration is loaded with the following precedence (highest to lowest):
    1. CLI arguments (handled by caller)
    2. Environment variables (SAML_SP_* prefix)
    3. Configuration file (JSON)
    4. Default values

    Args:
        config_path: Path to configuration file. If None, uses ./config/config.json

    Returns:
        Validated Config instance

    Raises:
        ConfigurationError: If configuration is invalid or malformed

    Example:
        >>> config = load_config(Path("config/sp.json"))
        >>> url = build_authn_request_url(config.to_saml_config())
    """
    # Load .env file if present in project root
    load_dotenv()

    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_PATH)

    config_dict = _load_config_file(config_path)
    config_dict = _apply_env_overrides(config_dict)

    try:
        return Config(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed:\n{e}\n\n"
            f"Fix: Check your configuration file at {config_path} and ensure all "
            f"values match the expected format. See documentation for details."
        ) from e


def _load_config_file(config_path: Path) -> dict[str, Any]:
    """Load configuration file or return defaults.

    Raises:
        ConfigurationError: If JSON is malformed, unreadable or not an object
    """
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_dict = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(
                f"Invalid JSON in config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check JSON syntax at line {e.lineno}, column {e.colno}"
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read config file: {config_path}\n"
                f"Error: {e}\n"
                f"Fix: Check file permissions and path"
            ) from e

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Config file {config_path} must hold a JSON object, "
                f"got {type(config_dict).__name__}\n"
                f"Fix: See examples/config.example.json for the expected layout"
            )
        logger.info(f"Loaded configuration from {config_path}")
        return config_dict

    logger.info(f"Config file not found: {config_path}. Using default configuration.")
    # Deep copy of defaults to avoid mutation
    return json.loads(json.dumps(DEFAULT_CONFIG))


def _apply_env_overrides(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides with SAML_SP_ prefix.

    Environment variables follow the pattern SAML_SP_<NAME>, for example
    SAML_SP_IDP_SSO_URL or SAML_SP_LOG_LEVEL.

    Args:
        config_dict: Configuration dictionary to update

    Returns:
        Updated configuration dictionary with environment overrides applied
    """
    for suffix, (section, field) in _ENV_OVERRIDES.items():
        value = os.getenv(f"{ENV_PREFIX}{suffix}")
        if not value:
            continue
        section_dict = config_dict.setdefault(section, {})
        if not isinstance(section_dict, dict):
            raise ConfigurationError(
                f"Config section '{section}' must be a JSON object to apply "
                f"{ENV_PREFIX}{suffix}, got {type(section_dict).__name__}\n"
                f"Fix: See examples/config.example.json for the expected layout"
            )
        section_dict[field] = _parse_bool(value) if field == "redact" else value
        logger.debug(f"Override: {section}.{field} from environment")
    return config_dict


def _parse_bool(value: str) -> bool:
    """Parse boolean value from string (case-insensitive)."""
    return value.lower() in ("true", "1", "yes", "on")


def load_public_key_pem(key_path: Path) -> str:
    """Read the IdP verification key (PEM public key or certificate).

    Args:
        key_path: Path to PEM file

    Returns:
        PEM text

    Raises:
        ConfigurationError: If the file cannot be read or holds no PEM block
    """
    try:
        data = key_path.read_bytes()
    except OSError as e:
        raise ConfigurationError(
            f"Failed to read IdP signing key: {key_path}\n"
            f"Error: {e}\n"
            f"Fix: Check identity_provider.signing_key_path"
        ) from e

    not_pem = (
        f"IdP signing key {key_path} is not PEM encoded. "
        f"Expected a PUBLIC KEY or CERTIFICATE block.\n"
        f"Fix: Convert DER keys with 'openssl ec -pubin -inform DER -in key.der'"
    )
    if b"-----BEGIN " not in data:
        raise ConfigurationError(not_pem)
    try:
        return data.decode("ascii")
    except UnicodeDecodeError as e:
        raise ConfigurationError(not_pem) from e
