"""
Structured Logging Configuration Module

Ledger, journal and verifier events carry their settlement context (ledger
instance, transaction id, account fingerprint) as record attributes. The JSON
formatter emits them as top-level fields; the text formatter appends them as
``key=value`` pairs so both formats can be grepped by transaction.
"""

import logging
import json
from datetime import datetime, timezone
from typing import Optional

# Record attributes set by log_action, in output order
CONTEXT_FIELDS = ("action", "ledger_id", "transaction_id", "account")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, context fields at top level"""

    def format(self, record):
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        details = getattr(record, 'details', None)
        if details:
            log_entry['details'] = details

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class ContextTextFormatter(logging.Formatter):
    """Plain text with the settlement context appended"""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)s %(name)s: %(message)s")

    def format(self, record):
        line = super().format(record)
        context = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        return f"{line} [{' '.join(context)}]" if context else line


def setup_logging(
    level: str = "INFO",
    logger_name: str = "coin_ledger",
    log_format: str = "json"
) -> logging.Logger:
    """
    Setup logging for the ledger.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        logger_name: Name of the logger
        log_format: "json" for structured output, anything else for plain text

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Remove existing handlers to avoid duplicates
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JSONFormatter() if log_format == "json" else ContextTextFormatter())

    logger.addHandler(handler)
    logger.setLevel(getattr(logging, level.upper()))
    logger.propagate = False

    return logger


def get_logger(name: str = "coin_ledger") -> logging.Logger:
    """Get logger instance"""
    return logging.getLogger(name)


def log_action(logger: logging.Logger, level: str, message: str,
               action: Optional[str] = None, ledger_id: Optional[str] = None,
               transaction_id: Optional[str] = None, account: Optional[str] = None,
               details: Optional[dict] = None):
    """
    Log a ledger event with its settlement context.

    Args:
        logger: Logger instance
        level: Log level (info, warning, error, etc.)
        message: Log message
        action: Operation performed, e.g. "apply_transaction"
        ledger_id: Id of the Ledger instance involved
        transaction_id: Transaction.transaction_id of the transaction involved
        account: Fingerprint of the account involved
        details: Additional structured data
    """
    levelno = getattr(logging, level.upper())
    if not logger.isEnabledFor(levelno):
        return

    record = logger.makeRecord(
        logger.name, levelno, __name__, 0, message, (), None
    )

    context = {
        "action": action,
        "ledger_id": ledger_id,
        "transaction_id": transaction_id,
        "account": account,
    }
    for field, value in context.items():
        if value is not None:
            setattr(record, field, value)
    if details:
        record.details = details

    logger.handle(record)
