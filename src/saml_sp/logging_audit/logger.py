"""Logging setup for the saml-sp CLI and applications embedding the SP core.

Two handlers are installed on the root logger:
- a console handler at the requested level
- a rotating file handler that records everything at DEBUG

Both share a SensitiveDataRedactingFormatter, so NameIDs and encoded
SAMLRequest/SignatureValue payloads can be masked in one place. The handlers
are tagged by name: reconfiguring swaps them out and leaves handlers owned by
the host application in place.
"""

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Optional

from .formatters import SensitiveDataRedactingFormatter

if TYPE_CHECKING:
    from ..config.schema import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "saml-sp.log"
LOG_FILE_ENV = "SAML_SP_LOG_FILE"
MAX_LOG_FILE_SIZE = 10 * 1024 * 1024  # 10MB
BACKUP_COUNT = 5

CONSOLE_HANDLER_NAME = "saml_sp.console"
FILE_HANDLER_NAME = "saml_sp.file"

logger = logging.getLogger(__name__)


def _parse_level(level: str) -> int:
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return numeric_level


def _resolve_log_file(log_file: Optional[Path]) -> Path:
    if log_file is not None:
        return Path(log_file)
    env_log_file = os.environ.get(LOG_FILE_ENV)
    return Path(env_log_file) if env_log_file else DEFAULT_LOG_FILE


def _remove_own_handlers(root_logger: logging.Logger) -> None:
    for handler in list(root_logger.handlers):
        if handler.get_name() in (CONSOLE_HANDLER_NAME, FILE_HANDLER_NAME):
            root_logger.removeHandler(handler)
            handler.close()


def resolve_logging_options(
    settings: "LoggingConfig",
    verbose: bool = False,
    log_file: Optional[Path] = None,
    redact: bool = False,
) -> Dict[str, Any]:
    """Merge CLI flags over the logging section of the config file.

    Args:
        settings: Logging section of the loaded Config
        verbose: --verbose given (forces DEBUG on the console)
        log_file: --log-file value, if any
        redact: --redact given

    Returns:
        Keyword arguments for configure_logging
    """
    return {
        "level": "DEBUG" if verbose else settings.level,
        "log_file": log_file or settings.log_file,
        "redact": redact or settings.redact,
    }


def configure_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    redact: bool = False,
) -> None:
    """Install the saml-sp console and file handlers on the root logger.

    Calling it again replaces the handlers from the previous call.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
            The file handler always records DEBUG.
        log_file: Log file path. Defaults to $SAML_SP_LOG_FILE, then
            logs/saml-sp.log.
        redact: Mask NameIDs and encoded SAML payloads in both handlers

    Raises:
        ValueError: If level is not a known log level
        RuntimeError: If the log directory cannot be created

    Example:
        >>> configure_logging(level="DEBUG", redact=True)
    """
    console_level = _parse_level(level)
    log_path = _resolve_log_file(log_file)

    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise RuntimeError(
            f"Failed to create log directory: {log_path.parent}. "
            f"Ensure write permissions are available. Error: {e}"
        ) from e

    root_logger = logging.getLogger()
    _remove_own_handlers(root_logger)
    root_logger.setLevel(logging.DEBUG)

    formatter = SensitiveDataRedactingFormatter(fmt=LOG_FORMAT, redact=redact)

    console_handler = logging.StreamHandler()
    console_handler.set_name(CONSOLE_HANDLER_NAME)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    try:
        file_handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=MAX_LOG_FILE_SIZE,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError as e:
        logger.warning(f"Cannot open log file {log_path}: {e}. Logging to console only.")
        return

    file_handler.set_name(FILE_HANDLER_NAME)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)
    logger.debug(f"Logging to {log_path} (console level {level.upper()}, redact={redact})")


def get_logger(module_name: str) -> logging.Logger:
    """Get a logger for the given module, typically __name__."""
    return logging.getLogger(module_name)
