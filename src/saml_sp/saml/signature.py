"""ECDSA P-256 signature verification over canonical SAML bytes.

The IdP signs the canonical Assertion bytes with ECDSA over SHA-256 and sends
the DER-encoded signature Base64-encoded in ``ds:SignatureValue``. Verification
keys are accepted as a PEM ``PUBLIC KEY`` or as the PEM X.509 signing
certificate found in IdP metadata.
"""

import base64
import binascii
import logging
from typing import Optional

from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ..utils.exceptions import SignatureLocationError
from .xml_tree import DS_NS, XMLNode

logger = logging.getLogger(__name__)

# XML-DSig algorithm URI of the signatures verified here
ECDSA_SHA256_ALGORITHM = "http://www.w3.org/2001/04/xmldsig-more#ecdsa-sha256"

_CERTIFICATE_MARKER = "-----BEGIN CERTIFICATE-----"


def load_verification_key(public_key_pem: str) -> ec.EllipticCurvePublicKey:
    """Load a P-256 verification key from PEM.

    Args:
        public_key_pem: PEM public key or PEM X.509 certificate

    Returns:
        Elliptic curve public key on SECP256R1

    Raises:
        ValueError: If PEM is malformed or not a P-256 key

    Example:
        >>> key = load_verification_key(Path("certs/idp-signing.pem").read_text())
    """
    pem = public_key_pem.strip().encode("utf-8")

    if _CERTIFICATE_MARKER in public_key_pem:
        public_key = x509.load_pem_x509_certificate(pem).public_key()
    else:
        public_key = serialization.load_pem_public_key(pem)

    if not isinstance(public_key, ec.EllipticCurvePublicKey):
        raise ValueError(
            f"Verification key must be an EC key, got {type(public_key).__name__}"
        )
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise ValueError(
            f"Verification key must be on P-256, got {public_key.curve.name}"
        )
    return public_key


def validate_signature(signed_data: bytes, signature: bytes, public_key_pem: str) -> bool:
    """Verify a DER-encoded ECDSA-SHA256 signature.

    Malformed keys or signatures count as a failed verification; nothing is
    raised.

    Args:
        signed_data: Canonical bytes that were signed
        signature: DER-encoded ECDSA signature
        public_key_pem: PEM public key or certificate of the IdP

    Returns:
        True if signature is valid, False otherwise

    Example:
        >>> validate_signature(canonical_bytes, signature_der, idp_key_pem)
        True
    """
    try:
        public_key = load_verification_key(public_key_pem)
        public_key.verify(signature, signed_data, ec.ECDSA(hashes.SHA256()))
    except InvalidSignature:
        logger.warning("ECDSA signature verification failed: signature does not match")
        return False
    except (ValueError, TypeError, UnsupportedAlgorithm) as e:
        logger.warning(f"ECDSA signature verification failed: malformed key or signature: {e}")
        return False

    logger.debug(f"ECDSA signature verified over {len(signed_data)} bytes")
    return True


def locate_signature(response: XMLNode, assertion: XMLNode) -> Optional[XMLNode]:
    """Find the ds:Signature whose SignatureValue is verified.

    The Response-level signature is checked first, then the Assertion-level
    one. A Signature without a SignatureValue child is skipped.

    Returns:
        ds:Signature node, or None when neither level carries one
    """
    for container in (response, assertion):
        signature = container.child(DS_NS, "Signature")
        if signature is not None and signature.child(DS_NS, "SignatureValue") is not None:
            return signature
    return None


def check_signature_method(signature: XMLNode) -> None:
    """Reject a declared SignatureMethod other than ECDSA-SHA256.

    Signatures without a SignedInfo/SignatureMethod declaration are verified
    as ECDSA-SHA256.

    Raises:
        SignatureLocationError: If another algorithm is declared
    """
    method = signature.descendant([(DS_NS, "SignedInfo"), (DS_NS, "SignatureMethod")])
    declared = method.attribute("Algorithm") if method is not None else None
    if declared is not None and declared != ECDSA_SHA256_ALGORITHM:
        raise SignatureLocationError(
            f"Unsupported SignatureMethod {declared!r}; expected {ECDSA_SHA256_ALGORITHM}"
        )


def extract_signature(response: XMLNode, assertion: XMLNode) -> bytes:
    """Locate and decode the SignatureValue of a Response.

    The Response-level signature is checked first, then the Assertion-level
    one.

    Args:
        response: samlp:Response node
        assertion: saml:Assertion node

    Returns:
        Decoded signature bytes

    Raises:
        SignatureLocationError: If no SignatureValue is present, it is empty,
            it is not valid Base64, or the signature declares another algorithm
    """
    signature = locate_signature(response, assertion)
    if signature is None:
        raise SignatureLocationError(
            "No Signature/SignatureValue found at Response or Assertion level"
        )
    location = "Response" if signature.element.getparent() is response.element else "Assertion"
    check_signature_method(signature)

    encoded = signature.child(DS_NS, "SignatureValue").text
    compact = "".join(encoded.split())
    if not compact:
        raise SignatureLocationError(f"{location}-level SignatureValue is empty")

    try:
        decoded = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise SignatureLocationError(
            f"{location}-level SignatureValue is not valid Base64: {e}"
        ) from e

    logger.debug(f"Located {location}-level signature ({len(decoded)} bytes)")
    return decoded
