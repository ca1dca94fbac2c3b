"""SAML 2.0 Service Provider core.

Builds HTTP-Redirect AuthnRequests and validates signed IdP Responses.
"""

__version__ = "0.1.0"
