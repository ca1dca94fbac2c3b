"""SAML 2.0 AuthnRequest construction for the HTTP-Redirect binding.

This module builds an AuthnRequest programmatically using lxml, compresses it
with raw DEFLATE, Base64-encodes and percent-encodes it, and places it on the
IdP SSO URL as the ``SAMLRequest`` query parameter.
"""

import base64
import binascii
import logging
import uuid
import zlib
from typing import Optional, Tuple
from urllib.parse import parse_qs, quote, unquote, urlencode, urlsplit, urlunsplit

from lxml import etree

from ..logging_audit.audit import log_audit_event
from ..models.saml import SAMLConfig, SAMLProtocolBinding
from ..utils.exceptions import EncodingError, UnsupportedBindingError
from ..utils.timestamps import format_saml_timestamp
from .xml_tree import SAML_NS, SAMLP_NS

logger = logging.getLogger(__name__)

EMAIL_NAMEID_FORMAT = "urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress"

# Raw DEFLATE: negative window bits disable zlib header and checksum
_RAW_DEFLATE_WBITS = -zlib.MAX_WBITS


def generate_request_id() -> str:
    """Generate unique AuthnRequest ID.

    IDs must start with a letter or underscore per the XML ID type.

    Returns:
        Unique request ID, format: _<32 hex characters>
    """
    request_id = f"_{uuid.uuid4().hex}"
    logger.debug(f"Generated request ID: {request_id}")
    return request_id


def deflate_and_encode(xml: str) -> str:
    """Raw-DEFLATE, Base64-encode and percent-encode an XML document.

    Args:
        xml: XML document text

    Returns:
        Value ready to be placed in a URL query component

    Raises:
        EncodingError: If the text cannot be encoded or compressed
    """
    try:
        data = xml.encode("utf-8")
        compressor = zlib.compressobj(zlib.Z_DEFAULT_COMPRESSION, zlib.DEFLATED, _RAW_DEFLATE_WBITS)
        deflated = compressor.compress(data) + compressor.flush()
    except (UnicodeEncodeError, zlib.error) as e:
        raise EncodingError(f"Failed to DEFLATE AuthnRequest: {e}") from e

    encoded = base64.b64encode(deflated).decode("ascii")
    return quote(encoded, safe="")


def decode_redirect_payload(value: str) -> str:
    """Inverse of the HTTP-Redirect encoding.

    Args:
        value: Encoded SAMLRequest value, or a full redirect URL carrying it

    Returns:
        Inflated XML document text

    Raises:
        EncodingError: If the value is not a valid encoded payload

    Example:
        >>> xml = decode_redirect_payload(redirect_url)
        >>> assert "AuthnRequest" in xml
    """
    encoded = value.strip()
    if "SAMLRequest=" in encoded:
        # parse_qs percent-decodes the value
        params = parse_qs(urlsplit(encoded).query or encoded)
        if not params.get("SAMLRequest"):
            raise EncodingError("Redirect URL has no SAMLRequest parameter")
        encoded = params["SAMLRequest"][0]
    else:
        encoded = unquote(encoded)

    try:
        deflated = base64.b64decode(encoded, validate=True)
        return zlib.decompress(deflated, _RAW_DEFLATE_WBITS).decode("utf-8")
    except (binascii.Error, ValueError, zlib.error) as e:
        raise EncodingError(f"Invalid HTTP-Redirect payload: {e}") from e


def construct_redirect_url(
    encoded_request: str, idp_sso_url: str, relay_state: Optional[str] = None
) -> str:
    """Place an encoded request on the IdP SSO URL.

    Any query string already on the SSO URL is replaced, not merged.

    Args:
        encoded_request: Percent-encoded SAMLRequest value
        idp_sso_url: IdP SSO endpoint
        relay_state: Optional RelayState to preserve across the SSO flow

    Returns:
        Fully qualified redirect URL

    Raises:
        EncodingError: If the SSO URL has no scheme or host
    """
    try:
        parts = urlsplit(idp_sso_url)
    except ValueError as e:
        raise EncodingError(f"Cannot parse IdP SSO URL {idp_sso_url!r}: {e}") from e

    if not parts.scheme or not parts.netloc:
        raise EncodingError(
            f"IdP SSO URL must be absolute (scheme and host), got: {idp_sso_url!r}"
        )

    query = f"SAMLRequest={encoded_request}"
    if relay_state:
        query += "&" + urlencode({"RelayState": relay_state})

    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, ""))


class SAMLRequestBuilder:
    """Build HTTP-Redirect AuthnRequest URLs for one Service Provider config.

    Attributes:
        config: Service Provider configuration
        last_request_id: ID of the most recently built request, for callers
            recording it for InResponseTo correlation

    Example:
        >>> config = SAMLConfig(
        ...     assertion_consumer_service_url="http://sp.example/saml",
        ...     idp_metadata=IDPMetadata("https://idp.example", "https://idp.example/sso"),
        ... )
        >>> builder = SAMLRequestBuilder(config)
        >>> url = builder.build_authn_request_url()
        >>> request_id = builder.last_request_id
    """

    def __init__(self, config: SAMLConfig) -> None:
        self.config = config
        self.last_request_id: Optional[str] = None

    def build_authn_request(self) -> Tuple[str, str]:
        """Render the AuthnRequest document.

        Returns:
            Tuple of (request_id, xml)
        """
        config = self.config
        request_id = generate_request_id()
        issue_instant = format_saml_timestamp()

        request = etree.Element(
            f"{{{SAMLP_NS}}}AuthnRequest",
            nsmap={"samlp": SAMLP_NS, "saml": SAML_NS},
        )
        # Set one by one to keep attribute order stable
        request.set("ID", request_id)
        request.set("Version", "2.0")
        request.set("IssueInstant", issue_instant)
        request.set("Destination", config.idp_metadata.sso_url)
        request.set("ProtocolBinding", config.binding.urn)
        request.set("AssertionConsumerServiceURL", config.assertion_consumer_service_url)

        issuer = etree.SubElement(request, f"{{{SAML_NS}}}Issuer")
        issuer.text = config.issuer

        etree.SubElement(
            request,
            f"{{{SAMLP_NS}}}NameIDPolicy",
            attrib={"Format": EMAIL_NAMEID_FORMAT, "AllowCreate": "true"},
        )

        xml = etree.tostring(request, encoding="unicode")
        logger.debug(f"Built AuthnRequest {request_id}:\n{xml}")
        return request_id, xml

    def build_authn_request_url(self, relay_state: Optional[str] = None) -> str:
        """Build the redirect URL carrying a fresh AuthnRequest.

        Args:
            relay_state: Optional RelayState to preserve across the SSO flow

        Returns:
            IdP SSO URL with SAMLRequest (and RelayState) query parameters

        Raises:
            UnsupportedBindingError: If the configured binding is not HTTP-Redirect
            EncodingError: If compression or URL construction fails
        """
        if self.config.binding is not SAMLProtocolBinding.REDIRECT:
            raise UnsupportedBindingError(
                f"Binding {self.config.binding.value} is not supported; "
                f"only {SAMLProtocolBinding.REDIRECT.value} requests can be built"
            )

        request_id, xml = self.build_authn_request()
        encoded = deflate_and_encode(xml)
        url = construct_redirect_url(encoded, self.config.idp_metadata.sso_url, relay_state)

        self.last_request_id = request_id
        log_audit_event("AUTHN_REQUEST_BUILT", {
            "status": "success",
            "request_id": request_id,
            "destination": self.config.idp_metadata.sso_url,
            "encoded_size": len(encoded),
        })
        return url


def build_authn_request_url(config: SAMLConfig, relay_state: Optional[str] = None) -> str:
    """Build a redirect URL for config. See SAMLRequestBuilder.build_authn_request_url."""
    return SAMLRequestBuilder(config).build_authn_request_url(relay_state)
