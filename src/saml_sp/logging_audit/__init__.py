"""Logging Audit module.

This module provides logging configuration and audit trail functionality.
"""

from .audit import log_audit_event
from .formatters import SensitiveDataRedactingFormatter
from .logger import configure_logging, get_logger, resolve_logging_options

__all__ = [
    "configure_logging",
    "get_logger",
    "log_audit_event",
    "resolve_logging_options",
    "SensitiveDataRedactingFormatter",
]
