"""Models module.

This module provides the immutable data models shared by the request builder
and the response validator.
"""

from saml_sp.models.saml import (
    IDPMetadata,
    SAMLAssertion,
    SAMLAudienceRestriction,
    SAMLAuthnContext,
    SAMLAuthnStatement,
    SAMLConditions,
    SAMLConfig,
    SAMLConfirmationData,
    SAMLProtocolBinding,
    SAMLSubject,
    SAMLSubjectConfirmation,
)

__all__ = [
    "IDPMetadata",
    "SAMLAssertion",
    "SAMLAudienceRestriction",
    "SAMLAuthnContext",
    "SAMLAuthnStatement",
    "SAMLConditions",
    "SAMLConfig",
    "SAMLConfirmationData",
    "SAMLProtocolBinding",
    "SAMLSubject",
    "SAMLSubjectConfirmation",
]
