"""Data models for SAML requests and validated assertions.

This module defines immutable dataclasses shared by the request builder and the
response validator. None of them carry behaviour beyond small convenience
accessors.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

# SAML 2.0 binding URN prefix
BINDING_URN_PREFIX = "urn:oasis:names:tc:SAML:2.0:bindings:"


class SAMLProtocolBinding(Enum):
    """SAML protocol binding selected by the Service Provider.

    Attributes:
        REDIRECT: HTTP-Redirect binding (DEFLATE + query string)
        POST: HTTP-POST binding (auto-submitting HTML form, not implemented)
    """

    REDIRECT = "HTTP-Redirect"
    POST = "HTTP-POST"

    @property
    def urn(self) -> str:
        """Full binding URN used in ProtocolBinding attributes."""
        return f"{BINDING_URN_PREFIX}{self.value}"


@dataclass(frozen=True)
class IDPMetadata:
    """Identity Provider metadata consumed by the request builder.

    Loading metadata XML into this type is the caller's responsibility.

    Attributes:
        entity_id: IdP entity identifier
        sso_url: IdP Single Sign-On service URL
        signing_certificate: Optional PEM certificate from IdP metadata
    """

    entity_id: str
    sso_url: str
    signing_certificate: Optional[str] = None

    @classmethod
    def mock_saml(cls) -> "IDPMetadata":
        """Metadata for the public mocksaml.com test IdP."""
        return cls(
            entity_id="https://saml.example.com/entityid",
            sso_url="https://mocksaml.com/api/saml/sso",
        )


@dataclass(frozen=True)
class SAMLConfig:
    """Service Provider settings for building an AuthnRequest.

    Attributes:
        assertion_consumer_service_url: URL the IdP posts the Response to
        idp_metadata: Target Identity Provider
        binding: Protocol binding requested from the IdP
        sp_entity_id: SP identifier for the Issuer element; falls back to
            the IdP entity ID when not set
    """

    assertion_consumer_service_url: str
    idp_metadata: IDPMetadata
    binding: SAMLProtocolBinding = SAMLProtocolBinding.REDIRECT
    sp_entity_id: Optional[str] = None

    @property
    def issuer(self) -> str:
        return self.sp_entity_id or self.idp_metadata.entity_id


@dataclass(frozen=True)
class SAMLAudienceRestriction:
    audience: str


@dataclass(frozen=True)
class SAMLConditions:
    """Validity window and audience constraints of an assertion.

    Attributes:
        not_before: Start of validity period (inclusive)
        not_on_or_after: End of validity period (exclusive)
        audience_restrictions: Audiences in document order
    """

    not_before: datetime
    not_on_or_after: datetime
    audience_restrictions: Tuple[SAMLAudienceRestriction, ...] = ()

    @property
    def audiences(self) -> Tuple[str, ...]:
        return tuple(r.audience for r in self.audience_restrictions)


@dataclass(frozen=True)
class SAMLConfirmationData:
    """SubjectConfirmationData attributes.

    Checking these against the original request (recipient, InResponseTo,
    time window) is the caller's job. Timestamps are None when the
    attribute is absent.
    """

    not_before: Optional[datetime]
    not_on_or_after: Optional[datetime]
    recipient: str = ""
    in_response_to: str = ""


@dataclass(frozen=True)
class SAMLSubjectConfirmation:
    method: str
    confirmation_data: SAMLConfirmationData


@dataclass(frozen=True)
class SAMLSubject:
    name_id: str
    confirmation: SAMLSubjectConfirmation


@dataclass(frozen=True)
class SAMLAuthnContext:
    """Authentication context of an AuthnStatement.

    Attributes:
        class_ref: AuthenticatingAuthority text, empty when absent
        authn_context_class_ref: AuthnContextClassRef text
    """

    class_ref: str
    authn_context_class_ref: str


@dataclass(frozen=True)
class SAMLAuthnStatement:
    authn_instant: str
    authn_context: SAMLAuthnContext
    session_index: Optional[str] = None
    subject_locality: Optional[str] = None


@dataclass(frozen=True)
class SAMLAssertion:
    """Validated SAML 2.0 assertion.

    Only produced after signature, conditions and critical-field checks
    all pass.

    Attributes:
        id: Assertion ID attribute
        issuer: Assertion Issuer text (never empty)
        issue_instant: IssueInstant attribute as sent by the IdP
        subject: Subject with NameID (never empty) and confirmation
        conditions: Parsed Conditions
        authn_statement: AuthnStatement details
        attributes: Attribute name to first value, read-only
    """

    id: str
    issuer: str
    issue_instant: str
    subject: SAMLSubject
    authn_statement: SAMLAuthnStatement
    conditions: Optional[SAMLConditions] = None
    attributes: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Frozen: wrap attributes in a read-only view
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))
