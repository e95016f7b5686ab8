"""
Order side definitions for the matching engine.

The book only carries plain limit intents, so the side is the one
classification an order needs.
"""

from enum import Enum


class OrderSide(Enum):
    """
    Order sides for buy and sell orders.

    - BUY: Orders to purchase the stock
    - SELL: Orders to sell the stock
    """
    BUY = "buy"
    SELL = "sell"

    @property
    def opposite(self) -> "OrderSide":
        """Return the side an order of this side matches against."""
        return OrderSide.SELL if self is OrderSide.BUY else OrderSide.BUY

    @property
    def label(self) -> str:
        return self.value.upper()


def validate_order_side(side) -> OrderSide:
    """
    Validate and convert a side value to an OrderSide enum.

    Accepts an OrderSide, or a case-insensitive "buy"/"sell" string.

    Args:
        side: Side value to convert

    Returns:
        OrderSide enum value

    Raises:
        ValueError: If side is invalid
    """
    if isinstance(side, OrderSide):
        return side
    if not isinstance(side, str):
        raise ValueError(f"Invalid order side: {side!r}. Must be one of: {[s.value for s in OrderSide]}")
    try:
        return OrderSide(side.strip().lower())
    except ValueError:
        raise ValueError(f"Invalid order side: {side}. Must be one of: {[s.value for s in OrderSide]}")
