"""Default configuration values.

This module defines the default configuration values used when no configuration
file is provided or when configuration values are not specified.
"""

from typing import Any

# Default configuration dictionary
# This is used as a fallback when no configuration file is present
DEFAULT_CONFIG: dict[str, Any] = {
    "service_provider": {
        # Local development ACS endpoint
        "assertion_consumer_service_url": "http://127.0.0.1:8080/saml",
        "entity_id": None,
        "binding": "HTTP-Redirect",
    },
    "identity_provider": {
        # Public mocksaml.com test IdP
        "entity_id": "https://saml.example.com/entityid",
        "sso_url": "https://mocksaml.com/api/saml/sso",
        # No default signing key - must be provided by user
        "signing_key_path": None,
    },
    "validation": {
        "expected_audience": None,
    },
    "logging": {
        "level": "INFO",
        "log_file": "logs/saml-sp.log",
        # Do not redact by default (user must opt-in)
        "redact": False,
    },
}

# Default configuration file path
DEFAULT_CONFIG_PATH = "config/config.json"
