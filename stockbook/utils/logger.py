"""
Logging configuration for the stock order book.

This module sets up console and rotating file logging, and a dedicated
audit trail for order submissions and trade executions.
"""

import logging
import logging.handlers
import os
import sys
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    max_file_size: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5
) -> None:
    """
    Set up logging configuration for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file (optional)
        max_file_size: Maximum log file size in bytes
        backup_count: Number of backup files to keep
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    detailed_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    simple_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    # stdout is reserved for the interactive console
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_file_size,
            backupCount=backup_count
        )
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(detailed_formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger('werkzeug').setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging initialized - Level: {level}, File: {log_file or 'Console only'}")


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a specific module.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def create_audit_logger(log_file: Optional[str] = "logs/audit.log") -> logging.Logger:
    """
    Create a dedicated audit logger.

    Args:
        log_file: Path to audit log file; None discards audit records

    Returns:
        Audit logger instance
    """
    audit_logger = logging.getLogger("audit")
    audit_logger.setLevel(logging.INFO)

    # Prevent propagation to root logger
    audit_logger.propagate = False

    for handler in list(audit_logger.handlers):
        audit_logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        audit_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=50 * 1024 * 1024,  # 50MB
            backupCount=10
        )
    else:
        audit_handler = logging.NullHandler()

    audit_handler.setFormatter(logging.Formatter('%(asctime)s|%(levelname)s|%(message)s'))
    audit_logger.addHandler(audit_handler)

    return audit_logger


def _audit_record(event: str, fields: List[Tuple[str, Any]]) -> str:
    return "|".join([event] + [f"{key}:{'N/A' if value is None else value}" for key, value in fields])


def _notional(price: Any, shares: Any) -> Optional[Decimal]:
    try:
        return Decimal(str(price)) * int(shares)
    except (InvalidOperation, TypeError, ValueError):
        return None


def log_order_audit(audit_logger: logging.Logger, action: str, order_data: dict) -> None:
    """
    Log order action to audit trail.

    Rejected requests are logged with whatever fields they carried, so
    any of them may be missing.

    Args:
        audit_logger: Audit logger instance
        action: Action performed (SUBMIT, REJECT)
        order_data: Order data dictionary
    """
    price = order_data.get('price')
    shares = order_data.get('quantity')
    audit_logger.info(_audit_record(f"ORDER_{action}", [
        ("ID", order_data.get('order_id')),
        ("SYMBOL", order_data.get('symbol')),
        ("SIDE", order_data.get('side')),
        ("SHARES", shares),
        ("LIMIT", price),
        ("NOTIONAL", _notional(price, shares)),
    ]))


def log_trade_audit(audit_logger: logging.Logger, trade_data: dict) -> None:
    """
    Log trade execution to audit trail.

    Args:
        audit_logger: Audit logger instance
        trade_data: Trade data dictionary
    """
    price = trade_data.get('price')
    shares = trade_data.get('quantity')
    audit_logger.info(_audit_record("TRADE_EXECUTE", [
        ("ID", trade_data.get('trade_id')),
        ("SYMBOL", trade_data.get('symbol')),
        ("SHARES", shares),
        ("PRICE", price),
        ("NOTIONAL", _notional(price, shares)),
        ("AGGRESSOR", trade_data.get('aggressor_side')),
        ("MAKER", trade_data.get('maker_order_id')),
        ("TAKER", trade_data.get('taker_order_id')),
    ]))
