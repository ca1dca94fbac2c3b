"""SAML 2.0 Service Provider request encoding and response validation.

This module provides functionality for:
- Building AuthnRequests for the HTTP-Redirect binding (raw DEFLATE + Base64)
- Parsing SAML Responses into a namespace-aware document tree
- Exclusive XML canonicalization of signed assertions
- ECDSA P-256 signature verification (cryptography)
- Conditions (time window and audience) validation
"""

from saml_sp.saml.canonicalization import (
    canonicalize_element,
    check_canonicalization_method,
    strip_enveloped_signature,
)
from saml_sp.saml.conditions import (
    audience_matches,
    extract_conditions,
    is_within_validity_window,
    validate_conditions,
)
from saml_sp.saml.request_builder import (
    SAMLRequestBuilder,
    build_authn_request_url,
    construct_redirect_url,
    decode_redirect_payload,
    deflate_and_encode,
    generate_request_id,
)
from saml_sp.saml.response_handler import (
    SAMLResponseValidator,
    decode_post_payload,
    process_response,
)
from saml_sp.saml.signature import (
    check_signature_method,
    extract_signature,
    load_verification_key,
    locate_signature,
    validate_signature,
)
from saml_sp.saml.xml_tree import XMLDocument, XMLNode

__all__ = [
    # Request encoding
    "SAMLRequestBuilder",
    "build_authn_request_url",
    "construct_redirect_url",
    "decode_redirect_payload",
    "deflate_and_encode",
    "generate_request_id",
    # Response validation
    "SAMLResponseValidator",
    "decode_post_payload",
    "process_response",
    # Sub-components
    "audience_matches",
    "canonicalize_element",
    "check_canonicalization_method",
    "check_signature_method",
    "extract_conditions",
    "extract_signature",
    "is_within_validity_window",
    "load_verification_key",
    "locate_signature",
    "strip_enveloped_signature",
    "validate_conditions",
    "validate_signature",
    "XMLDocument",
    "XMLNode",
]
