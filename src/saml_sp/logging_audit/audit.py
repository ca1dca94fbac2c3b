"""Audit trail functionality for the SAML SP core.

Every built AuthnRequest and every accepted or rejected Response produces one
structured audit line, so operators can see which validation stage rejected a
message without that detail ever reaching the end user.
"""

import time
import uuid
from typing import Any, Dict

from .logger import get_logger

logger = get_logger(__name__)


def log_audit_event(event_type: str, details: Dict[str, Any]) -> None:
    """Log an audit trail event.

    Creates a structured audit log entry with standard fields. Audit events are
    logged at INFO level for successful operations and ERROR level for failures.

    Args:
        event_type: Type of operation (e.g., "AUTHN_REQUEST_BUILT",
                   "SAML_RESPONSE_ACCEPTED", "SAML_RESPONSE_REJECTED")
        details: Dictionary with event details. Common fields include:
                - status: "success" or "failure"
                - stage: Validation stage that failed
                - error_type: Exception class name
                - error_message: Error details (if status is failure)
                - correlation_id: Optional correlation ID for tracking related events

    Example:
        >>> log_audit_event("SAML_RESPONSE_REJECTED", {
        ...     "status": "failure",
        ...     "stage": "validate_audience",
        ...     "error_type": "AudienceMismatchError",
        ...     "error_message": "Expected audience not found",
        ... })
    """
    # Work on a copy; callers may reuse their dict
    details = dict(details)

    if "timestamp" not in details:
        details["timestamp"] = time.time()

    if "correlation_id" not in details:
        details["correlation_id"] = str(uuid.uuid4())

    message_parts = [f"AUDIT [{event_type}]"]

    field_order = [
        "status",
        "stage",
        "error_type",
        "error_message",
        "correlation_id",
    ]

    for field in field_order:
        if field in details:
            message_parts.append(f"{field}={details[field]}")

    for key, value in details.items():
        if key not in field_order and key != "timestamp":
            message_parts.append(f"{key}={value}")

    audit_message = " | ".join(message_parts)

    status = details.get("status", "unknown")
    if status == "failure":
        logger.error(audit_message)
    else:
        logger.info(audit_message)
