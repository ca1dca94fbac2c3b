"""Configuration schema models using pydantic.

This module defines the configuration structure and validation rules using
pydantic. The validated Config converts into the immutable SAMLConfig consumed
by the request builder.
"""

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from saml_sp.models.saml import IDPMetadata, SAMLConfig, SAMLProtocolBinding


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"Invalid URL: {v}. Must start with http:// or https://")
    return v


class ServiceProviderConfig(BaseModel):
    """Configuration for this Service Provider.

    Attributes:
        assertion_consumer_service_url: URL the IdP posts Responses to
        entity_id: SP entity identifier used as the AuthnRequest Issuer
        binding: Requested protocol binding (HTTP-Redirect or HTTP-POST)
    """

    assertion_consumer_service_url: str = Field(..., description="ACS URL")
    entity_id: Optional[str] = Field(
        default=None,
        description="SP entity ID (AuthnRequest Issuer); defaults to the IdP entity ID"
    )
    binding: SAMLProtocolBinding = Field(
        default=SAMLProtocolBinding.REDIRECT,
        description="Protocol binding: HTTP-Redirect or HTTP-POST"
    )

    @field_validator("assertion_consumer_service_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        return _validate_http_url(v)


class IdentityProviderConfig(BaseModel):
    """Configuration for the trusted Identity Provider.

    Attributes:
        entity_id: IdP entity identifier
        sso_url: IdP Single Sign-On endpoint
        signing_key_path: PEM public key or certificate used to verify Responses
        signing_certificate: Inline PEM signing certificate, as published in
            IdP metadata; used when no key path is configured
    """

    entity_id: str = Field(..., min_length=1, description="IdP entity ID")
    sso_url: str = Field(..., description="IdP SSO URL")
    signing_key_path: Optional[Path] = Field(
        default=None,
        description="Path to IdP P-256 signing key or certificate (PEM)"
    )
    signing_certificate: Optional[str] = Field(
        default=None,
        description="IdP signing certificate (PEM text) from metadata"
    )

    @field_validator("sso_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL is valid HTTP/HTTPS.

        Raises:
            ValueError: If URL does not start with http:// or https://
        """
        return _validate_http_url(v)

    @field_validator("signing_certificate")
    @classmethod
    def validate_certificate(cls, v: Optional[str]) -> Optional[str]:
        """Validate the certificate is PEM text.

        Raises:
            ValueError: If no PEM CERTIFICATE block is present
        """
        if v is not None and "-----BEGIN CERTIFICATE-----" not in v:
            raise ValueError("signing_certificate must be a PEM CERTIFICATE block")
        return v


class ValidationConfig(BaseModel):
    """Configuration for Response validation.

    Attributes:
        expected_audience: Audience this SP accepts; defaults to the SP entity ID
    """

    expected_audience: Optional[str] = Field(
        default=None,
        description="Expected AudienceRestriction value"
    )


class LoggingConfig(BaseModel):
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file
        redact: Whether to redact NameIDs and encoded payloads from logs
    """

    level: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR, CRITICAL"
    )
    log_file: Path = Field(
        default=Path("logs/saml-sp.log"),
        description="Log file path"
    )
    redact: bool = Field(
        default=False,
        description="Redact NameIDs and encoded SAML payloads from logs"
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level.

        Returns:
            Validated log level (uppercase)

        Raises:
            ValueError: If log level is not valid
        """
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                f"Invalid log level: {v}. Must be one of: {', '.join(valid_levels)}"
            )
        return v_upper


class Config(BaseModel):
    """Root configuration model.

    Attributes:
        service_provider: This SP's settings
        identity_provider: Trusted IdP settings
        validation: Response validation settings
        logging: Logging configuration

    Example:
        >>> config = Config(
        ...     service_provider=ServiceProviderConfig(
        ...         assertion_consumer_service_url="http://sp.example/saml"
        ...     ),
        ...     identity_provider=IdentityProviderConfig(
        ...         entity_id="https://idp.example", sso_url="https://idp.example/sso"
        ...     ),
        ... )
        >>> config.to_saml_config().binding
        <SAMLProtocolBinding.REDIRECT: 'HTTP-Redirect'>
    """

    service_provider: ServiceProviderConfig
    identity_provider: IdentityProviderConfig
    validation: ValidationConfig = ValidationConfig()
    logging: LoggingConfig = LoggingConfig()

    def to_saml_config(self) -> SAMLConfig:
        """Build the immutable SAMLConfig for the request builder."""
        return SAMLConfig(
            assertion_consumer_service_url=self.service_provider.assertion_consumer_service_url,
            idp_metadata=IDPMetadata(
                entity_id=self.identity_provider.entity_id,
                sso_url=self.identity_provider.sso_url,
                signing_certificate=self.identity_provider.signing_certificate,
            ),
            binding=self.service_provider.binding,
            sp_entity_id=self.service_provider.entity_id,
        )

    @property
    def expected_audience(self) -> Optional[str]:
        """Configured audience, falling back to the SP entity ID."""
        return self.validation.expected_audience or self.service_provider.entity_id
