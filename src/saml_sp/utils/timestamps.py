"""SAML timestamp helpers.

SAML carries xs:dateTime values in UTC. Outgoing timestamps use the
``YYYY-MM-DDTHH:MM:SSZ`` form; incoming ones are parsed leniently (fractional
seconds, ``Z`` or numeric offsets) and always returned timezone-aware.
"""

from datetime import datetime, timezone
from typing import Optional

SAML_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_saml_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a datetime as a SAML UTC timestamp.

    Args:
        moment: Datetime to format (default: now, UTC)

    Returns:
        Timestamp string with Z suffix

    Example:
        >>> format_saml_timestamp(datetime(2024, 5, 6, 12, 0, tzinfo=timezone.utc))
        '2024-05-06T12:00:00Z'
    """
    if moment is None:
        moment = datetime.now(timezone.utc)
    elif moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime(SAML_TIMESTAMP_FORMAT)


def parse_saml_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 SAML timestamp into an aware datetime.

    Naive values are taken as UTC.

    Args:
        value: Timestamp string (e.g., "2024-05-06T12:00:00Z")

    Returns:
        Timezone-aware datetime

    Raises:
        ValueError: If value is empty or not ISO-8601
    """
    text = value.strip() if value else ""
    if not text:
        raise ValueError("Empty timestamp")

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
