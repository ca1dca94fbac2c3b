"""SP-initiated SSO Round Trip Example.

This example walks through both halves of the Service Provider core against a
locally simulated Identity Provider.

Key features demonstrated:
- Building an HTTP-Redirect AuthnRequest URL
- Decoding the SAMLRequest the way an IdP would
- Signing a Response with an ECDSA P-256 key (exclusive c14n of the Assertion)
- Validating the Response and reading the extracted assertion
- Operator diagnostics for a rejected Response

Run after ``pip install -e .``:

    python examples/sso_round_trip_example.py
"""

import base64
import copy
from datetime import datetime, timedelta, timezone

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from lxml import etree

from saml_sp.models.saml import IDPMetadata, SAMLConfig
from saml_sp.saml import SAMLRequestBuilder, decode_redirect_payload, process_response
from saml_sp.saml.xml_tree import DS_NS, SAML_NS, SAMLP_NS
from saml_sp.utils.exceptions import (
    USER_FACING_REJECTION_MESSAGE,
    ResponseValidationError,
    create_error_info,
)
from saml_sp.utils.timestamps import format_saml_timestamp

SP_ENTITY_ID = "https://sp.example.com"
IDP_ENTITY_ID = "https://idp.example.com"


def example_build_request(config: SAMLConfig) -> str:
    """Example 1: Build the redirect URL and inspect the encoded request."""
    print("\n" + "=" * 70)
    print("Example 1: HTTP-Redirect AuthnRequest")
    print("=" * 70)

    builder = SAMLRequestBuilder(config)
    url = builder.build_authn_request_url(relay_state="/dashboard")

    print(f"\n✓ Redirect URL ({len(url)} chars):")
    print(f"  {url[:100]}...")
    print(f"  • Request ID: {builder.last_request_id}")

    print("\n✓ Decoded AuthnRequest (as the IdP sees it):")
    print("-" * 70)
    print(decode_redirect_payload(url))
    print("-" * 70)

    return builder.last_request_id


def idp_response(private_key: ec.EllipticCurvePrivateKey, request_id: str, audience: str) -> str:
    """Play the IdP: render an Assertion, sign its canonical form, wrap it in a Response."""
    now = datetime.now(timezone.utc)
    response = etree.Element(f"{{{SAMLP_NS}}}Response", nsmap={"samlp": SAMLP_NS, "saml": SAML_NS})
    response.set("ID", "_response-example")
    response.set("Version", "2.0")
    response.set("IssueInstant", format_saml_timestamp(now))
    response.set("InResponseTo", request_id)

    assertion = etree.SubElement(response, f"{{{SAML_NS}}}Assertion")
    assertion.set("ID", "_assertion-example")
    assertion.set("Version", "2.0")
    assertion.set("IssueInstant", format_saml_timestamp(now))
    etree.SubElement(assertion, f"{{{SAML_NS}}}Issuer").text = IDP_ENTITY_ID

    subject = etree.SubElement(assertion, f"{{{SAML_NS}}}Subject")
    etree.SubElement(subject, f"{{{SAML_NS}}}NameID").text = "alice@example.com"
    confirmation = etree.SubElement(
        subject, f"{{{SAML_NS}}}SubjectConfirmation",
        Method="urn:oasis:names:tc:SAML:2.0:cm:bearer",
    )
    etree.SubElement(
        confirmation, f"{{{SAML_NS}}}SubjectConfirmationData",
        InResponseTo=request_id,
        Recipient="http://127.0.0.1:8080/saml",
        NotOnOrAfter=format_saml_timestamp(now + timedelta(minutes=5)),
    )

    conditions = etree.SubElement(
        assertion, f"{{{SAML_NS}}}Conditions",
        NotBefore=format_saml_timestamp(now - timedelta(minutes=1)),
        NotOnOrAfter=format_saml_timestamp(now + timedelta(minutes=5)),
    )
    restriction = etree.SubElement(conditions, f"{{{SAML_NS}}}AudienceRestriction")
    etree.SubElement(restriction, f"{{{SAML_NS}}}Audience").text = audience

    statement = etree.SubElement(
        assertion, f"{{{SAML_NS}}}AuthnStatement",
        AuthnInstant=format_saml_timestamp(now), SessionIndex="_session-example",
    )
    context = etree.SubElement(statement, f"{{{SAML_NS}}}AuthnContext")
    etree.SubElement(context, f"{{{SAML_NS}}}AuthnContextClassRef").text = (
        "urn:oasis:names:tc:SAML:2.0:ac:classes:PasswordProtectedTransport"
    )

    signed_bytes = etree.tostring(
        copy.deepcopy(assertion), method="c14n", exclusive=True, with_comments=False)
    der = private_key.sign(signed_bytes, ec.ECDSA(hashes.SHA256()))

    signature = etree.Element(f"{{{DS_NS}}}Signature", nsmap={"ds": DS_NS})
    etree.SubElement(signature, f"{{{DS_NS}}}SignatureValue").text = base64.b64encode(der).decode("ascii")
    assertion.insert(1, signature)

    return etree.tostring(response, encoding="unicode")


def example_validate_response(response_xml: str, public_key_pem: str) -> None:
    """Example 2: Validate a signed Response."""
    print("\n" + "=" * 70)
    print("Example 2: Response Validation")
    print("=" * 70)

    assertion = process_response(response_xml, public_key_pem, SP_ENTITY_ID)

    print("\n✓ Assertion accepted:")
    print(f"  • Assertion ID: {assertion.id}")
    print(f"  • Issuer: {assertion.issuer}")
    print(f"  • NameID: {assertion.subject.name_id}")
    print(f"  • InResponseTo: {assertion.subject.confirmation.confirmation_data.in_response_to}")
    print(f"  • Valid until: {assertion.conditions.not_on_or_after.isoformat()}")
    print(f"  • Context: {assertion.authn_statement.authn_context.authn_context_class_ref}")


def example_rejected_response(response_xml: str, public_key_pem: str) -> None:
    """Example 3: Diagnose a Response addressed to another SP."""
    print("\n" + "=" * 70)
    print("Example 3: Rejected Response Diagnostics")
    print("=" * 70)

    try:
        process_response(response_xml, public_key_pem, "https://another-sp.example")
    except ResponseValidationError as e:
        info = create_error_info(e)
        print(f"\n✗ End user sees: {USER_FACING_REJECTION_MESSAGE}")
        print("  Operator sees:")
        print(f"  • Error type: {info.error_type}")
        print(f"  • Stage: {info.stage}")
        print(f"  • Message: {info.message}")
        print(f"  • Remediation: {info.remediation}")


def main():
    """Run all examples."""
    print("\n" + "=" * 70)
    print("SAML SP ROUND TRIP EXAMPLES")
    print("=" * 70)

    idp_key = ec.generate_private_key(ec.SECP256R1())
    public_key_pem = idp_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")

    config = SAMLConfig(
        assertion_consumer_service_url="http://127.0.0.1:8080/saml",
        idp_metadata=IDPMetadata(IDP_ENTITY_ID, "https://idp.example.com/sso"),
        sp_entity_id=SP_ENTITY_ID,
    )

    request_id = example_build_request(config)
    response_xml = idp_response(idp_key, request_id, SP_ENTITY_ID)
    example_validate_response(response_xml, public_key_pem)
    example_rejected_response(response_xml, public_key_pem)

    print("\n" + "=" * 70)
    print("ALL EXAMPLES COMPLETED")
    print("=" * 70 + "\n")


if __name__ == "__main__":
    main()
