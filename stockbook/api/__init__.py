"""
API layer for the stock order book.

This module provides the REST API for order submission, book views,
trade history and snapshot management.
"""

from .rest_api import create_app, run_server
from .validators import validate_order_request, validate_symbol

__all__ = [
    "create_app",
    "run_server",
    "validate_order_request",
    "validate_symbol",
]
