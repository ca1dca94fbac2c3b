"""Config module.

This module provides configuration management functionality.
"""

from saml_sp.config.manager import load_config, load_public_key_pem
from saml_sp.config.schema import (
    Config,
    IdentityProviderConfig,
    LoggingConfig,
    ServiceProviderConfig,
    ValidationConfig,
)

__all__ = [
    # Main configuration loading
    "load_config",
    "load_public_key_pem",
    # Configuration models
    "Config",
    "IdentityProviderConfig",
    "LoggingConfig",
    "ServiceProviderConfig",
    "ValidationConfig",
]
