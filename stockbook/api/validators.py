"""
Input validation utilities for the API layer.

Each validator returns a tuple whose first element says whether the input
was accepted, followed by an error message and the parsed value.
"""

import logging
import os
import re
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from ..core.errors import InvalidOrderError
from ..core.order import parse_price
from ..core.order_types import OrderSide, validate_order_side

logger = logging.getLogger(__name__)

# Symbol validation pattern (e.g., AAPL, BRK.B, RDS-A)
SYMBOL_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9.\-]{0,14}$')

# Whole shares, ASCII digits only
QUANTITY_PATTERN = re.compile(r'[0-9]+')

# Default limits, overridden from Settings by the app
MAX_QUANTITY = 1000000
MIN_PRICE = Decimal('0.00000001')
MAX_PRICE = Decimal('10000000')
MAX_DEPTH = 100


def validate_symbol(symbol: Any) -> Tuple[bool, Optional[str]]:
    """
    Validate stock symbol format.

    Args:
        symbol: Stock symbol to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not symbol:
        return False, "Symbol cannot be empty"

    if not isinstance(symbol, str):
        return False, "Symbol must be a string"

    if not SYMBOL_PATTERN.match(symbol):
        return False, f"Invalid symbol format: {symbol}. Expected an upper-case ticker (e.g., AAPL)"

    return True, None


def validate_quantity(quantity: Any, max_quantity: int = MAX_QUANTITY) -> Tuple[bool, Optional[str], Optional[int]]:
    """
    Validate order quantity.

    Accepts integers and strings of digits; fractional shares are rejected.

    Returns:
        Tuple of (is_valid, error_message, parsed_quantity)
    """
    if quantity is None:
        return False, "Quantity is required", None

    if isinstance(quantity, bool):
        return False, f"Invalid quantity format: {quantity}", None

    if isinstance(quantity, str) and QUANTITY_PATTERN.fullmatch(quantity.strip()):
        qty = int(quantity.strip())
    elif isinstance(quantity, int):
        qty = quantity
    else:
        return False, f"Invalid quantity format: {quantity}. Must be a whole number of shares", None

    if qty <= 0:
        return False, "Quantity must be positive", None

    if qty > max_quantity:
        return False, f"Quantity too large. Maximum: {max_quantity}", None

    return True, None, qty


def validate_price(
    price: Any,
    min_price: Decimal = MIN_PRICE,
    max_price: Decimal = MAX_PRICE,
) -> Tuple[bool, Optional[str], Optional[Decimal]]:
    """
    Validate order price.

    Returns:
        Tuple of (is_valid, error_message, parsed_price)
    """
    if price is None:
        return False, "Price is required", None

    try:
        prc = parse_price(price)
    except InvalidOrderError as e:
        return False, str(e), None

    if prc < min_price:
        return False, f"Price too small. Minimum: {min_price}", None

    if prc > max_price:
        return False, f"Price too large. Maximum: {max_price}", None

    return True, None, prc


def validate_side(side: Any) -> Tuple[bool, Optional[str], Optional[OrderSide]]:
    """
    Validate order side.

    Returns:
        Tuple of (is_valid, error_message, parsed_order_side)
    """
    if not side:
        return False, "Order side is required", None

    try:
        return True, None, validate_order_side(side)
    except ValueError as e:
        return False, str(e), None


def validate_order_request(
    data: Dict[str, Any],
    max_quantity: int = MAX_QUANTITY,
    min_price: Decimal = MIN_PRICE,
    max_price: Decimal = MAX_PRICE,
) -> Tuple[bool, Optional[str], Optional[Dict[str, Any]]]:
    """
    Validate complete order request.

    Args:
        data: Order request data

    Returns:
        Tuple of (is_valid, error_message, parsed_data)
    """
    required_fields = ['symbol', 'side', 'price', 'quantity']
    for field in required_fields:
        if field not in data:
            return False, f"Missing required field: {field}", None

    is_valid, error = validate_symbol(data['symbol'])
    if not is_valid:
        return False, error, None

    is_valid, error, side = validate_side(data['side'])
    if not is_valid:
        return False, error, None

    is_valid, error, quantity = validate_quantity(data['quantity'], max_quantity)
    if not is_valid:
        return False, error, None

    is_valid, error, price = validate_price(data['price'], min_price, max_price)
    if not is_valid:
        return False, error, None

    validated_data = {
        'symbol': data['symbol'],
        'side': side,
        'quantity': quantity,
        'price': price,
    }

    return True, None, validated_data


def validate_depth_request(depth: Any, max_depth: int = MAX_DEPTH) -> Tuple[bool, Optional[str], Optional[int]]:
    """
    Validate order book depth request.

    Returns:
        Tuple of (is_valid, error_message, parsed_depth)
    """
    if depth is None:
        return True, None, 10

    try:
        depth = int(depth)
    except (ValueError, TypeError):
        return False, f"Invalid depth format: {depth}. Must be an integer", None

    if depth <= 0:
        return False, "Depth must be positive", None

    if depth > max_depth:
        return False, f"Depth too large. Maximum: {max_depth}", None

    return True, None, depth


def validate_snapshot_request(data: Dict[str, Any], default_path: str) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate a snapshot save/load request.

    Relative paths resolve against the working directory, as the default
    does, and every path must resolve to a file inside the directory that
    holds the default snapshot.

    Returns:
        Tuple of (is_valid, error_message, snapshot_path)
    """
    if not isinstance(default_path, str) or not default_path.strip():
        return False, "No default snapshot path is configured", None

    snapshot_dir = os.path.realpath(os.path.dirname(os.path.abspath(default_path.strip())))
    path = data.get('path') or default_path

    if not isinstance(path, str) or not path.strip():
        return False, "Snapshot path must be a non-empty string", None

    if '\x00' in path:
        return False, "Snapshot path contains invalid characters", None

    resolved = os.path.realpath(os.path.abspath(path.strip()))
    if os.path.commonpath([resolved, snapshot_dir]) != snapshot_dir or resolved == snapshot_dir:
        return False, f"Snapshot path must be a file inside {snapshot_dir}", None

    return True, None, resolved
