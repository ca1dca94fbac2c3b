"""Assertion Conditions extraction and validation.

The validation functions are pure: the current time is always passed in, never
sampled here.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from ..models.saml import SAMLAudienceRestriction, SAMLConditions
from ..utils.exceptions import ConditionsParseError
from ..utils.timestamps import parse_saml_timestamp
from .xml_tree import SAML_NS, XMLNode

logger = logging.getLogger(__name__)


def _required_timestamp(conditions: XMLNode, name: str) -> datetime:
    value = conditions.attribute(name)
    if value is None:
        raise ConditionsParseError(f"Conditions/@{name} is missing")
    try:
        return parse_saml_timestamp(value)
    except ValueError as e:
        raise ConditionsParseError(
            f"Conditions/@{name} is not an ISO-8601 timestamp: {value!r}"
        ) from e


def extract_conditions(assertion: XMLNode) -> SAMLConditions:
    """Extract the Conditions element of an assertion.

    Args:
        assertion: saml:Assertion node

    Returns:
        Parsed SAMLConditions

    Raises:
        ConditionsParseError: If Conditions, NotBefore or NotOnOrAfter is
            missing or a timestamp is unparseable
    """
    conditions = assertion.child(SAML_NS, "Conditions")
    if conditions is None:
        raise ConditionsParseError("Assertion has no Conditions element")

    not_before = _required_timestamp(conditions, "NotBefore")
    not_on_or_after = _required_timestamp(conditions, "NotOnOrAfter")

    restrictions = tuple(
        SAMLAudienceRestriction(audience=node.text)
        for node in conditions.descendants(
            [(SAML_NS, "AudienceRestriction"), (SAML_NS, "Audience")]
        )
        if node.text
    )

    if not restrictions:
        logger.warning(
            "No audience restrictions found in Conditions; audience validation will fail"
        )

    logger.debug(
        f"Extracted Conditions: NotBefore={not_before.isoformat()}, "
        f"NotOnOrAfter={not_on_or_after.isoformat()}, "
        f"audiences={[r.audience for r in restrictions]}"
    )
    return SAMLConditions(
        not_before=not_before,
        not_on_or_after=not_on_or_after,
        audience_restrictions=restrictions,
    )


def is_within_validity_window(conditions: SAMLConditions, now: datetime) -> bool:
    """Check NotBefore <= now < NotOnOrAfter. Naive now is taken as UTC."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return conditions.not_before <= now < conditions.not_on_or_after


def audience_matches(conditions: SAMLConditions, expected_audience: Optional[str]) -> bool:
    """Check the expected audience is one of the restrictions."""
    if not expected_audience:
        return False
    return any(r.audience == expected_audience for r in conditions.audience_restrictions)


def validate_conditions(
    conditions: SAMLConditions, expected_audience: str, now: datetime
) -> bool:
    """Validate the time window and audience of an assertion.

    Args:
        conditions: Parsed assertion conditions
        expected_audience: This SP's audience identifier
        now: Current time (timezone-aware)

    Returns:
        True iff the time window and audience checks both pass

    Example:
        >>> validate_conditions(conditions, "https://sp.example.com", datetime.now(timezone.utc))
        True
    """
    is_time_valid = is_within_validity_window(conditions, now)
    is_audience_valid = audience_matches(conditions, expected_audience)

    if not is_time_valid:
        logger.warning(
            f"Conditions time window check failed: now={now.isoformat()}, "
            f"NotBefore={conditions.not_before.isoformat()}, "
            f"NotOnOrAfter={conditions.not_on_or_after.isoformat()}"
        )
    if not is_audience_valid:
        logger.warning(
            f"Audience check failed: expected={expected_audience!r}, "
            f"found={list(conditions.audiences)}"
        )

    return is_time_valid and is_audience_valid
