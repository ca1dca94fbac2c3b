"""SAML Response validation and assertion extraction.

This module runs the full validation pipeline over an IdP's Response:

1. Parse the XML with a hardened parser
2. Locate the single Assertion under the Response
3. Canonicalize the Assertion (exclusive c14n, enveloped signature removed);
   a declared CanonicalizationMethod must be exc-c14n
4. Locate the SignatureValue (Response level first, then Assertion level);
   a declared SignatureMethod must be ECDSA-SHA256
5. Verify the ECDSA P-256 signature over the canonical bytes
6. Extract and validate Conditions (time window, then audience)
7. Extract the assertion fields
8. Reject assertions with an empty Issuer or NameID

Each stage short-circuits with its own ResponseValidationError subclass. No
partially validated assertion is ever returned.
"""

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from lxml import etree

from ..logging_audit.audit import log_audit_event
from ..models.saml import (
    SAMLAssertion,
    SAMLAuthnContext,
    SAMLAuthnStatement,
    SAMLConditions,
    SAMLConfirmationData,
    SAMLSubject,
    SAMLSubjectConfirmation,
)
from ..utils.exceptions import (
    AudienceMismatchError,
    ConditionsInvalidError,
    ConditionsParseError,
    CriticalFieldMissingError,
    MissingAssertionError,
    ParseError,
    ResponseValidationError,
    SignatureVerificationError,
)
from ..utils.timestamps import parse_saml_timestamp
from .canonicalization import canonicalize_element, check_canonicalization_method
from .conditions import audience_matches, extract_conditions, is_within_validity_window
from .signature import extract_signature, locate_signature, validate_signature
from .xml_tree import SAML_NS, SAMLP_NS, XMLDocument, XMLNode

logger = logging.getLogger(__name__)


def decode_post_payload(saml_response: Union[str, bytes]) -> bytes:
    """Base64-decode the SAMLResponse form field of an HTTP-POST.

    The validator expects already-decoded XML; the HTTP layer calls this
    before process_response.

    Args:
        saml_response: SAMLResponse form value

    Returns:
        Raw Response XML bytes

    Raises:
        ParseError: If the value is not valid Base64
    """
    raw = saml_response.encode("ascii", "ignore") if isinstance(saml_response, str) else saml_response
    compact = b"".join(raw.split())
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ParseError(f"SAMLResponse is not valid Base64: {e}") from e


def _optional_timestamp(node: Optional[XMLNode], name: str) -> Optional[datetime]:
    """Parse an optional SubjectConfirmationData timestamp.

    Absent values become None with a warning; malformed ones are rejected.
    """
    value = node.attribute(name) if node is not None else None
    if value is None:
        logger.warning(
            f"SubjectConfirmationData/@{name} is absent; callers enforcing the "
            f"confirmation window must treat it as missing"
        )
        return None
    try:
        return parse_saml_timestamp(value)
    except ValueError as e:
        raise ConditionsParseError(
            f"SubjectConfirmationData/@{name} is not an ISO-8601 timestamp: {value!r}"
        ) from e


class SAMLResponseValidator:
    """Validate SAML Responses and extract their assertion.

    Stateless: one instance may be shared between threads.

    Example:
        >>> validator = SAMLResponseValidator()
        >>> assertion = validator.process_response(
        ...     response_xml, idp_public_key_pem, "https://sp.example.com"
        ... )
        >>> print(assertion.subject.name_id)
    """

    def process_response(
        self,
        response_xml: Union[str, bytes],
        public_key_pem: str,
        expected_audience: str,
        now: Optional[datetime] = None,
    ) -> SAMLAssertion:
        """Validate a Response and return its assertion.

        Args:
            response_xml: Response XML, already Base64-decoded
            public_key_pem: Trusted IdP P-256 key (PEM public key or certificate)
            expected_audience: This SP's audience identifier
            now: Validation time (default: current UTC time)

        Returns:
            Fully validated SAMLAssertion

        Raises:
            ParseError: Response is not well-formed XML
            MissingAssertionError: No single Assertion under the Response
            CanonicalizationError: Canonical form cannot be produced
            SignatureLocationError: No usable SignatureValue
            SignatureVerificationError: Signature does not verify
            ConditionsParseError: Conditions timestamps missing or unparseable
            ConditionsInvalidError: Current time outside the validity window
            AudienceMismatchError: Expected audience not in AudienceRestriction
            CriticalFieldMissingError: Issuer or NameID empty
        """
        if now is None:
            now = datetime.now(timezone.utc)
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        try:
            assertion = self._validate(response_xml, public_key_pem, expected_audience, now)
        except ResponseValidationError as e:
            log_audit_event("SAML_RESPONSE_REJECTED", {
                "status": "failure",
                "error_type": type(e).__name__,
                "stage": e.stage,
                "error_message": str(e),
            })
            raise

        log_audit_event("SAML_RESPONSE_ACCEPTED", {
            "status": "success",
            "assertion_id": assertion.id,
            "issuer": assertion.issuer,
            "name_id": assertion.subject.name_id,
        })
        return assertion

    def _validate(
        self,
        response_xml: Union[str, bytes],
        public_key_pem: str,
        expected_audience: str,
        now: datetime,
    ) -> SAMLAssertion:
        document = self.parse(response_xml)
        response = document.root
        assertion_node = self.locate_assertion(response)

        check_canonicalization_method(locate_signature(response, assertion_node))
        signed_data = canonicalize_element(assertion_node)
        signature = extract_signature(response, assertion_node)

        if not validate_signature(signed_data, signature, public_key_pem):
            raise SignatureVerificationError(
                "Assertion signature could not be verified with the trusted key"
            )
        logger.info("Assertion signature verified")

        conditions = extract_conditions(assertion_node)
        self.check_conditions(conditions, expected_audience, now)

        return self.extract_assertion(assertion_node, conditions)

    def parse(self, response_xml: Union[str, bytes]) -> XMLDocument:
        """Parse Response XML.

        Raises:
            ParseError: If XML is empty or malformed
        """
        try:
            return XMLDocument.parse(response_xml)
        except etree.XMLSyntaxError as e:
            logger.error(f"Malformed SAML Response XML: {e}")
            raise ParseError(f"Response is not well-formed XML: {e}") from e
        except ValueError as e:
            logger.error(f"Unparseable SAML Response: {e}")
            raise ParseError(f"Response could not be parsed: {e}") from e

    def locate_assertion(self, response: XMLNode) -> XMLNode:
        """Find the single Assertion directly under the Response.

        Raises:
            MissingAssertionError: If the root is not a Response or it does
                not hold exactly one Assertion
        """
        if not response.is_named(SAMLP_NS, "Response"):
            raise MissingAssertionError(
                f"Root element is {response.element.tag}, expected samlp:Response"
            )

        assertions = response.children(SAML_NS, "Assertion")
        if not assertions:
            raise MissingAssertionError("Response contains no Assertion element")
        if len(assertions) > 1:
            raise MissingAssertionError(
                f"Response contains {len(assertions)} Assertion elements, expected exactly one"
            )
        return assertions[0]

    def check_conditions(
        self, conditions: SAMLConditions, expected_audience: str, now: datetime
    ) -> None:
        """Enforce the time window, then the audience restriction.

        Raises:
            ConditionsInvalidError: If now is outside [NotBefore, NotOnOrAfter)
            AudienceMismatchError: If expected_audience is not restricted to
        """
        if not is_within_validity_window(conditions, now):
            raise ConditionsInvalidError(
                f"Assertion not valid at {now.isoformat()}: window is "
                f"[{conditions.not_before.isoformat()}, {conditions.not_on_or_after.isoformat()})"
            )

        if not audience_matches(conditions, expected_audience):
            raise AudienceMismatchError(
                f"Expected audience {expected_audience!r} not in {list(conditions.audiences)}"
            )

    def extract_assertion(
        self, assertion: XMLNode, conditions: Optional[SAMLConditions] = None
    ) -> SAMLAssertion:
        """Extract assertion fields.

        Args:
            assertion: saml:Assertion node
            conditions: Already parsed Conditions

        Returns:
            SAMLAssertion

        Raises:
            CriticalFieldMissingError: If Issuer or NameID is empty
            ConditionsParseError: If a SubjectConfirmationData timestamp is malformed
        """
        issuer_node = assertion.child(SAML_NS, "Issuer")
        issuer = issuer_node.text if issuer_node is not None else ""

        subject = self._extract_subject(assertion)
        authn_statement = self._extract_authn_statement(assertion)
        attributes = self._extract_attributes(assertion)

        if not issuer or not subject.name_id:
            missing = [n for n, v in (("Issuer", issuer), ("NameID", subject.name_id)) if not v]
            logger.error(f"Critical assertion fields empty: {', '.join(missing)}")
            raise CriticalFieldMissingError(
                f"Assertion is missing critical fields: {', '.join(missing)}"
            )

        return SAMLAssertion(
            id=assertion.attribute("ID") or "",
            issuer=issuer,
            issue_instant=assertion.attribute("IssueInstant") or "",
            subject=subject,
            conditions=conditions,
            authn_statement=authn_statement,
            attributes=attributes,
        )

    def _extract_subject(self, assertion: XMLNode) -> SAMLSubject:
        name_id = assertion.descendant([(SAML_NS, "Subject"), (SAML_NS, "NameID")])
        confirmation = assertion.descendant(
            [(SAML_NS, "Subject"), (SAML_NS, "SubjectConfirmation")]
        )
        data = (
            confirmation.child(SAML_NS, "SubjectConfirmationData")
            if confirmation is not None
            else None
        )

        confirmation_data = SAMLConfirmationData(
            not_before=_optional_timestamp(data, "NotBefore"),
            not_on_or_after=_optional_timestamp(data, "NotOnOrAfter"),
            recipient=(data.attribute("Recipient") if data is not None else None) or "",
            in_response_to=(data.attribute("InResponseTo") if data is not None else None) or "",
        )
        return SAMLSubject(
            name_id=name_id.text if name_id is not None else "",
            confirmation=SAMLSubjectConfirmation(
                method=(confirmation.attribute("Method") if confirmation is not None else None) or "",
                confirmation_data=confirmation_data,
            ),
        )

    def _extract_authn_statement(self, assertion: XMLNode) -> SAMLAuthnStatement:
        statement = assertion.child(SAML_NS, "AuthnStatement")
        if statement is None:
            logger.warning("Assertion has no AuthnStatement")
            return SAMLAuthnStatement(
                authn_instant="",
                authn_context=SAMLAuthnContext(class_ref="", authn_context_class_ref=""),
            )

        class_ref = statement.descendant(
            [(SAML_NS, "AuthnContext"), (SAML_NS, "AuthenticatingAuthority")]
        )
        context_class_ref = statement.descendant(
            [(SAML_NS, "AuthnContext"), (SAML_NS, "AuthnContextClassRef")]
        )
        locality = statement.child(SAML_NS, "SubjectLocality")

        return SAMLAuthnStatement(
            authn_instant=statement.attribute("AuthnInstant") or "",
            session_index=statement.attribute("SessionIndex"),
            authn_context=SAMLAuthnContext(
                class_ref=class_ref.text if class_ref is not None else "",
                authn_context_class_ref=context_class_ref.text if context_class_ref is not None else "",
            ),
            subject_locality=locality.attribute("Address") if locality is not None else None,
        )

    def _extract_attributes(self, assertion: XMLNode) -> Dict[str, str]:
        attributes: Dict[str, str] = {}
        for attribute in assertion.descendants(
            [(SAML_NS, "AttributeStatement"), (SAML_NS, "Attribute")]
        ):
            name = attribute.attribute("Name")
            value = attribute.child(SAML_NS, "AttributeValue")
            if not name or value is None:
                continue
            if name in attributes:
                logger.debug(f"Duplicate attribute {name!r}; keeping last value")
            # Single-value semantics: first AttributeValue only
            attributes[name] = value.text
        return attributes


def process_response(
    response_xml: Union[str, bytes],
    public_key_pem: str,
    expected_audience: str,
    now: Optional[datetime] = None,
) -> SAMLAssertion:
    """Validate a Response. See SAMLResponseValidator.process_response."""
    return SAMLResponseValidator().process_response(
        response_xml, public_key_pem, expected_audience, now
    )
