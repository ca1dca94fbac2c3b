"""
Shared pytest configuration and fixtures.

This module provides fixtures used across all test suites: P-256 key pairs
and a factory that renders IdP Responses and signs them the way an IdP does
(ECDSA-SHA256 over the exclusive canonical Assertion bytes).
"""

import base64
import copy
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID
from lxml import etree

SAMLP_NS = "urn:oasis:names:tc:SAML:2.0:protocol"
SAML_NS = "urn:oasis:names:tc:SAML:2.0:assertion"
DS_NS = "http://www.w3.org/2000/09/xmldsig#"

IDP_ENTITY_ID = "https://idp.example.com"
SP_AUDIENCE = "https://sp.example.com"
ACS_URL = "http://sp.example/saml"
ASSERTION_ID = "_assertion123"
REQUEST_ID = "_request123"

# Fixed reference time; tests pass it as `now`
NOW = datetime(2024, 5, 6, 12, 0, 0, tzinfo=timezone.utc)


def _ts(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def public_key_to_pem(private_key) -> str:
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("ascii")


def canonical_assertion_bytes(assertion: etree._Element) -> bytes:
    """Exclusive c14n of an unsigned Assertion, computed independently of saml_sp."""
    return etree.tostring(
        copy.deepcopy(assertion), method="c14n", exclusive=True, with_comments=False
    )


def build_signature_element(signature_value: str) -> etree._Element:
    signature = etree.Element(f"{{{DS_NS}}}Signature", nsmap={"ds": DS_NS})
    signed_info = etree.SubElement(signature, f"{{{DS_NS}}}SignedInfo")
    etree.SubElement(
        signed_info,
        f"{{{DS_NS}}}CanonicalizationMethod",
        Algorithm="http://www.w3.org/2001/10/xml-exc-c14n#",
    )
    etree.SubElement(
        signed_info,
        f"{{{DS_NS}}}SignatureMethod",
        Algorithm="http://www.w3.org/2001/04/xmldsig-more#ecdsa-sha256",
    )
    value = etree.SubElement(signature, f"{{{DS_NS}}}SignatureValue")
    value.text = signature_value
    return signature


class ResponseFactory:
    """Render and sign SAML Responses for tests.

    Attributes:
        private_key: IdP P-256 signing key
    """

    def __init__(self, private_key: ec.EllipticCurvePrivateKey) -> None:
        self.private_key = private_key

    def render(
        self,
        *,
        issuer: str = IDP_ENTITY_ID,
        name_id: Optional[str] = "alice@example.com",
        audiences: Sequence[str] = (SP_AUDIENCE,),
        not_before: Optional[datetime] = None,
        not_on_or_after: Optional[datetime] = None,
        include_conditions: bool = True,
        confirmation_not_before: Optional[str] = None,
        confirmation_not_on_or_after: Optional[str] = "DEFAULT",
        attributes: Iterable[Tuple[str, Sequence[str]]] = (
            ("email", ["alice@example.com"]),
            ("role", ["admin", "user"]),
        ),
        prefix: str = "saml",
        assertion_count: int = 1,
    ) -> str:
        """Render an unsigned Response document."""
        p = prefix
        not_before = not_before or NOW - timedelta(minutes=5)
        not_on_or_after = not_on_or_after or NOW + timedelta(minutes=5)
        if confirmation_not_on_or_after == "DEFAULT":
            confirmation_not_on_or_after = _ts(NOW + timedelta(minutes=5))

        name_id_xml = (
            f'<{p}:NameID Format="urn:oasis:names:tc:SAML:1.1:nameid-format:emailAddress">'
            f"{name_id}</{p}:NameID>"
            if name_id is not None
            else ""
        )

        confirmation_attrs = f'Recipient="{ACS_URL}" InResponseTo="{REQUEST_ID}"'
        if confirmation_not_before is not None:
            confirmation_attrs += f' NotBefore="{confirmation_not_before}"'
        if confirmation_not_on_or_after is not None:
            confirmation_attrs += f' NotOnOrAfter="{confirmation_not_on_or_after}"'

        conditions_xml = ""
        if include_conditions:
            audience_xml = "".join(
                f"<{p}:AudienceRestriction><{p}:Audience>{a}</{p}:Audience></{p}:AudienceRestriction>"
                for a in audiences
            )
            conditions_xml = (
                f'<{p}:Conditions NotBefore="{_ts(not_before)}" '
                f'NotOnOrAfter="{_ts(not_on_or_after)}">{audience_xml}</{p}:Conditions>'
            )

        attribute_xml = "".join(
            f'<{p}:Attribute Name="{name}">'
            + "".join(f"<{p}:AttributeValue>{v}</{p}:AttributeValue>" for v in values)
            + f"</{p}:Attribute>"
            for name, values in attributes
        )
        if attribute_xml:
            attribute_xml = f"<{p}:AttributeStatement>{attribute_xml}</{p}:AttributeStatement>"

        assertion = f"""
    <{p}:Assertion xmlns:{p}="{SAML_NS}" ID="{ASSERTION_ID}" Version="2.0" IssueInstant="{_ts(NOW)}">
        <{p}:Issuer>{issuer}</{p}:Issuer>
        <{p}:Subject>
            {name_id_xml}
            <{p}:SubjectConfirmation Method="urn:oasis:names:tc:SAML:2.0:cm:bearer">
                <{p}:SubjectConfirmationData {confirmation_attrs}/>
            </{p}:SubjectConfirmation>
        </{p}:Subject>
        {conditions_xml}
        <{p}:AuthnStatement AuthnInstant="{_ts(NOW)}" SessionIndex="_session123">
            <{p}:SubjectLocality Address="203.0.113.7"/>
            <{p}:AuthnContext>
                <{p}:AuthnContextClassRef>urn:oasis:names:tc:SAML:2.0:ac:classes:PasswordProtectedTransport</{p}:AuthnContextClassRef>
                <{p}:AuthenticatingAuthority>{IDP_ENTITY_ID}</{p}:AuthenticatingAuthority>
            </{p}:AuthnContext>
        </{p}:AuthnStatement>
        {attribute_xml}
    </{p}:Assertion>"""

        return f"""<samlp:Response xmlns:samlp="{SAMLP_NS}" xmlns:saml="{SAML_NS}" ID="_response123" Version="2.0" IssueInstant="{_ts(NOW)}" Destination="{ACS_URL}" InResponseTo="{REQUEST_ID}">
    <saml:Issuer>{IDP_ENTITY_ID}</saml:Issuer>
    <samlp:Status>
        <samlp:StatusCode Value="urn:oasis:names:tc:SAML:2.0:status:Success"/>
    </samlp:Status>{assertion * assertion_count}
</samlp:Response>"""

    def sign(
        self,
        response_xml: str,
        location: str = "assertion",
        private_key: Optional[ec.EllipticCurvePrivateKey] = None,
    ) -> str:
        """Sign the Assertion of a rendered Response.

        Args:
            response_xml: Unsigned Response
            location: "assertion" or "response" (where ds:Signature goes)
            private_key: Override signing key

        Returns:
            Signed Response XML
        """
        key = private_key or self.private_key
        root = etree.fromstring(response_xml.encode("utf-8"))
        assertion = root.find(f"{{{SAML_NS}}}Assertion")

        signed_data = canonical_assertion_bytes(assertion)
        der = key.sign(signed_data, ec.ECDSA(hashes.SHA256()))
        signature = build_signature_element(base64.b64encode(der).decode("ascii"))

        # After Issuer, no tail: removing it restores the signed bytes
        container = assertion if location == "assertion" else root
        container.insert(1, signature)
        return etree.tostring(root, encoding="unicode")

    def signed(self, location: str = "assertion", **kwargs) -> str:
        """Render and sign in one step."""
        return self.sign(self.render(**kwargs), location=location)


@pytest.fixture
def project_root() -> Path:
    """
    Return the project root directory.

    Returns:
        Path: Absolute path to the project root directory.
    """
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def idp_private_key() -> ec.EllipticCurvePrivateKey:
    """IdP P-256 signing key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def idp_public_key_pem(idp_private_key) -> str:
    """PEM SubjectPublicKeyInfo of the IdP signing key."""
    return public_key_to_pem(idp_private_key)


@pytest.fixture(scope="session")
def other_private_key() -> ec.EllipticCurvePrivateKey:
    """Unrelated P-256 key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def idp_certificate_pem(idp_private_key) -> str:
    """Self-signed X.509 certificate wrapping the IdP signing key."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test IdP")])
    certificate = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(idp_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(datetime.now(timezone.utc) - timedelta(days=1))
        .not_valid_after(datetime.now(timezone.utc) + timedelta(days=365))
        .sign(idp_private_key, hashes.SHA256())
    )
    return certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")


@pytest.fixture
def response_factory(idp_private_key) -> ResponseFactory:
    """Factory for signed test Responses."""
    return ResponseFactory(idp_private_key)


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() side effects on the root logger."""
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_level = root.level

    yield root

    # pytest's own capture handlers come and go per test phase; leave them alone
    for handler in list(root.handlers):
        if handler in saved_handlers or type(handler).__module__.startswith("_pytest"):
            continue
        root.removeHandler(handler)
        handler.close()
    root.setLevel(saved_level)


@pytest.fixture
def now() -> datetime:
    """Fixed validation time inside the default Conditions window."""
    return NOW
