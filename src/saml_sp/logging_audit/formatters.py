"""Custom log formatters for the SAML SP core.

This module provides specialized formatters for logging, including redaction of
subject identifiers and encoded SAML payloads.
"""

import logging
import re
from typing import List, Tuple


class SensitiveDataRedactingFormatter(logging.Formatter):
    """Formatter that redacts user identifiers and SAML payloads from log messages.

    NameIDs are commonly e-mail addresses, and encoded SAMLRequest or
    SignatureValue blobs are noise in shared logs. Both are masked when
    redaction is enabled.

    Attributes:
        redact: Whether to enable redaction
        patterns: List of (regex_pattern, replacement_text) tuples for redaction

    Example:
        >>> formatter = SensitiveDataRedactingFormatter(
        ...     fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        ...     redact=True
        ... )
        >>> handler = logging.StreamHandler()
        >>> handler.setFormatter(formatter)
    """

    def __init__(
        self,
        fmt: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt: str | None = None,
        redact: bool = False,
    ) -> None:
        """Initialize the SensitiveDataRedactingFormatter.

        Args:
            fmt: Log message format string
            datefmt: Date format string (optional)
            redact: Whether to enable redaction
        """
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.redact = redact

        # Define redaction patterns: (regex, replacement_text)
        self.patterns: List[Tuple[re.Pattern[str], str]] = [
            # E-mail style NameIDs: alice@example.com
            (re.compile(r'\b[\w.+-]+@[\w-]+(?:\.[\w-]+)+\b'), '[EMAIL-REDACTED]'),

            # name_id=... fields in audit lines
            (re.compile(r'name_id=[^\s|]+'), 'name_id=[NAMEID-REDACTED]'),

            # Long Base64 / percent-encoded blobs (SAMLRequest, SignatureValue)
            (re.compile(r'[A-Za-z0-9+/%]{64,}={0,2}'), '[PAYLOAD-REDACTED]'),
        ]

    def format(self, record: logging.LogRecord) -> str:
        """Format the log record with optional redaction.

        Args:
            record: Log record to format

        Returns:
            Formatted log message with sensitive data redacted if enabled
        """
        original = super().format(record)

        if self.redact:
            for pattern, replacement in self.patterns:
                original = pattern.sub(replacement, original)

        return original
