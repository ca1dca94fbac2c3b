"""Custom exception classes for the SAML Service Provider core.

All exceptions inherit from SAMLSPError to allow catching all custom exceptions.
Every response validation stage raises its own ResponseValidationError subclass
so operators can tell which stage rejected a message.
"""

from dataclasses import dataclass
from typing import Optional

# Message shown to end users for every rejection kind
USER_FACING_REJECTION_MESSAGE = "Authentication rejected."


class SAMLSPError(Exception):
    """Base exception for all SAML SP custom exceptions."""

    pass


class ConfigurationError(SAMLSPError):
    """Raised when configuration loading or validation fails.

    Examples:
        - Missing required configuration
        - Invalid configuration file format
        - Unreadable verification key file
    """

    pass


class EncodingError(SAMLSPError):
    """Raised when an AuthnRequest cannot be encoded into a redirect URL.

    Examples:
        - DEFLATE compression failure
        - IdP SSO URL without scheme or host
        - Undecodable redirect payload
    """

    pass


class UnsupportedBindingError(EncodingError):
    """Raised when a binding other than HTTP-Redirect is selected."""

    pass


class ResponseValidationError(SAMLSPError):
    """Base exception for SAML Response validation failures.

    Attributes:
        stage: Name of the validation stage that failed
    """

    stage = "validation"


class ParseError(ResponseValidationError):
    """Raised when the Response body is not well-formed XML."""

    stage = "parse"


class MissingAssertionError(ResponseValidationError):
    """Raised when no single Assertion element can be located."""

    stage = "locate_assertion"


class CanonicalizationError(ResponseValidationError):
    """Raised when the canonical form of the Assertion cannot be produced."""

    stage = "canonicalize"


class SignatureLocationError(ResponseValidationError):
    """Raised when no usable SignatureValue is found.

    Examples:
        - No Signature element at Response or Assertion level
        - Empty SignatureValue
        - SignatureValue that is not valid Base64
    """

    stage = "locate_signature"


class SignatureVerificationError(ResponseValidationError):
    """Raised when cryptographic verification fails.

    Also raised for malformed keys or signatures, which are treated the
    same as a failed verification.
    """

    stage = "verify_signature"


class ConditionsParseError(ResponseValidationError):
    """Raised when NotBefore/NotOnOrAfter are missing or unparseable."""

    stage = "parse_conditions"


class ConditionsInvalidError(ResponseValidationError):
    """Raised when the current time is outside [NotBefore, NotOnOrAfter)."""

    stage = "validate_time_window"


class AudienceMismatchError(ResponseValidationError):
    """Raised when the expected audience is absent from AudienceRestriction."""

    stage = "validate_audience"


class CriticalFieldMissingError(ResponseValidationError):
    """Raised when Issuer or NameID is empty after extraction."""

    stage = "extract_assertion"


@dataclass
class ErrorInfo:
    """Structured error information for operator diagnostics.

    Never shown to end users; see USER_FACING_REJECTION_MESSAGE.

    Attributes:
        error_type: Exception class name (e.g., "AudienceMismatchError")
        stage: Validation stage that failed, or "encoding"/"configuration"
        message: Error message
        remediation: Actionable guidance for resolving the error
        technical_details: Optional chained cause for debugging

    Example:
        >>> info = create_error_info(AudienceMismatchError("no match"))
        >>> info.stage
        'validate_audience'
    """

    error_type: str
    stage: str
    message: str
    remediation: str
    technical_details: Optional[str] = None


def create_error_info(exception: Exception) -> ErrorInfo:
    """Create structured error information from exception.

    Args:
        exception: Exception that occurred

    Returns:
        ErrorInfo with stage and remediation guidance

    Example:
        >>> info = create_error_info(SignatureVerificationError("bad signature"))
        >>> print(info.remediation)
    """
    if isinstance(exception, ResponseValidationError):
        stage = exception.stage
    elif isinstance(exception, EncodingError):
        stage = "encoding"
    elif isinstance(exception, ConfigurationError):
        stage = "configuration"
    else:
        stage = "unknown"

    technical_details = None
    if exception.__cause__ is not None:
        technical_details = (
            f"Caused by: {type(exception.__cause__).__name__}: {exception.__cause__}"
        )

    return ErrorInfo(
        error_type=type(exception).__name__,
        stage=stage,
        message=str(exception),
        remediation=_generate_remediation(exception),
        technical_details=technical_details,
    )


def _generate_remediation(exception: Exception) -> str:
    """Generate actionable remediation message for an error.

    Args:
        exception: Exception that occurred

    Returns:
        Actionable remediation message
    """
    if isinstance(exception, ParseError):
        return (
            "Response is not well-formed XML. Confirm the HTTP layer Base64-decoded "
            "the SAMLResponse form field before passing it in."
        )

    if isinstance(exception, MissingAssertionError):
        return (
            "No single plaintext Assertion under the Response. Encrypted assertions "
            "are not supported; check the IdP's assertion encryption setting."
        )

    if isinstance(exception, CanonicalizationError):
        return "Assertion could not be canonicalized. Inspect the raw XML for corruption."

    if isinstance(exception, SignatureLocationError):
        return (
            "No usable SignatureValue found. Ensure the IdP signs the Response "
            "or the Assertion."
        )

    if isinstance(exception, SignatureVerificationError):
        return (
            "Signature did not verify. Check that the configured key is the IdP's "
            "current P-256 signing key and that the message was not modified in transit."
        )

    if isinstance(exception, ConditionsParseError):
        return "Conditions NotBefore/NotOnOrAfter are missing or not ISO-8601 timestamps."

    if isinstance(exception, ConditionsInvalidError):
        return (
            "Assertion is expired or not yet valid. Check clock synchronisation "
            "between SP and IdP, and that the response is not being replayed."
        )

    if isinstance(exception, AudienceMismatchError):
        return (
            "Expected audience not found. Ensure the IdP is configured with this "
            "SP's entity ID as the audience."
        )

    if isinstance(exception, CriticalFieldMissingError):
        return "Issuer or NameID is empty. Check the IdP's NameID mapping."

    if isinstance(exception, UnsupportedBindingError):
        return "Only the HTTP-Redirect binding is supported. Set binding to HTTP-Redirect."

    if isinstance(exception, EncodingError):
        return "Check the IdP SSO URL is an absolute http(s) URL."

    if isinstance(exception, ConfigurationError):
        return (
            "Configuration error. Check config.json for missing or invalid values. "
            "Use examples/config.example.json as template."
        )

    return "Review error message and the log file for complete details."
