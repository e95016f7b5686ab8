"""
Order and Trade data structures for the matching engine.

This module defines the core data structures for orders and trades,
with validation and dictionary serialization. All prices use Decimal
so crossing checks never depend on binary floating-point rounding.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from .errors import InvalidOrderError
from .order_types import OrderSide, validate_order_side

# Float prices are rounded to this quantum on the way in
PRICE_QUANTUM = Decimal('0.00000001')


def parse_price(value: Any) -> Decimal:
    """
    Convert a caller-supplied price to a positive, finite Decimal.

    Strings, ints and Decimals are taken exactly. Floats go through their
    shortest repr and are quantized to PRICE_QUANTUM, so 0.1 + 0.2 becomes
    Decimal('0.30000000').

    Raises:
        InvalidOrderError: If the value is not a positive finite number
    """
    if isinstance(value, bool) or value is None:
        raise InvalidOrderError(f"Invalid price: {value!r}")

    try:
        if isinstance(value, float):
            price = Decimal(repr(value))
            if price.is_finite():
                price = price.quantize(PRICE_QUANTUM)
        else:
            price = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidOrderError(f"Invalid price format: {value!r}")

    if not price.is_finite():
        raise InvalidOrderError(f"Price must be finite, got: {value!r}")
    if price <= 0:
        raise InvalidOrderError(f"Price must be positive, got: {value}")
    return price


def parse_quantity(value: Any) -> int:
    """
    Validate a share quantity.

    Raises:
        InvalidOrderError: If the value is not a positive integer
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidOrderError(f"Quantity must be a whole number of shares, got: {value!r}")
    if value <= 0:
        raise InvalidOrderError(f"Quantity must be positive, got: {value}")
    return value


def _format_price(price: Decimal) -> str:
    return format(price, 'f')


def _parse_timestamp(value: Any) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"Timestamp must be an ISO-8601 string, got: {value!r}")
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


@dataclass
class Order:
    """
    A buy or sell intent for one stock symbol.

    Only ``quantity`` may change once the order exists; the matching engine
    decrements it as the order fills. Every other field is fixed at
    creation and reassigning it raises AttributeError.
    """

    symbol: str
    side: OrderSide
    price: Decimal
    quantity: int

    order_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate and normalize order after initialization."""
        if not isinstance(self.symbol, str) or not self.symbol.strip():
            raise InvalidOrderError("Symbol cannot be empty")
        try:
            side = validate_order_side(self.side)
        except ValueError as e:
            raise InvalidOrderError(str(e))

        object.__setattr__(self, 'symbol', self.symbol.strip())
        object.__setattr__(self, 'side', side)
        object.__setattr__(self, 'price', parse_price(self.price))
        parse_quantity(self.quantity)

    def __setattr__(self, name: str, value: Any) -> None:
        if name != 'quantity' and name in self.__dict__:
            raise AttributeError(f"Order field '{name}' cannot be changed after creation")
        super().__setattr__(name, value)

    @property
    def is_buy(self) -> bool:
        return self.side is OrderSide.BUY

    def crosses(self, resting: 'Order') -> bool:
        """
        Check whether this incoming order can execute against a resting one.

        A buy crosses an ask priced at or below it; a sell crosses a bid
        priced at or above it.
        """
        if self.is_buy:
            return self.price >= resting.price
        return self.price <= resting.price

    def __str__(self) -> str:
        return f"{self.side.label} {self.quantity} shares of {self.symbol} at ${_format_price(self.price)}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert order to dictionary for serialization."""
        return {
            "order_id": self.order_id,
            "symbol": self.symbol,
            "side": self.side.value,
            "price": str(self.price),
            "quantity": self.quantity,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Order':
        """Create order from dictionary."""
        return cls(
            order_id=data["order_id"],
            symbol=data["symbol"],
            side=OrderSide(data["side"]),
            price=parse_price(data["price"]),
            quantity=data["quantity"],
            timestamp=_parse_timestamp(data["timestamp"]),
        )


@dataclass(frozen=True)
class Trade:
    """
    One match between an incoming (taker) order and a resting (maker) order.

    The price is always the maker's price.
    """

    symbol: str
    price: Decimal
    quantity: int
    aggressor_side: OrderSide
    maker_order_id: str
    taker_order_id: str

    trade_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        """Validate trade after initialization."""
        self._validate()

    def _validate(self) -> None:
        """
        Validate trade parameters.

        Raises:
            ValueError: If trade parameters are invalid
        """
        if not isinstance(self.symbol, str) or not self.symbol:
            raise ValueError("Symbol cannot be empty")

        if not isinstance(self.price, Decimal) or not self.price.is_finite() or self.price <= 0:
            raise ValueError(f"Price must be a positive Decimal, got: {self.price!r}")

        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int) or self.quantity <= 0:
            raise ValueError(f"Quantity must be a positive integer, got: {self.quantity!r}")

        if not self.maker_order_id:
            raise ValueError("Maker order ID cannot be empty")

        if not self.taker_order_id:
            raise ValueError("Taker order ID cannot be empty")

    @property
    def notional_value(self) -> Decimal:
        """Calculate notional value of the trade."""
        return self.price * self.quantity

    def describe(self) -> str:
        return f"TRADE: {self.quantity} shares of {self.symbol} at ${_format_price(self.price)}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert trade to dictionary for serialization."""
        return {
            "trade_id": self.trade_id,
            "symbol": self.symbol,
            "price": str(self.price),
            "quantity": self.quantity,
            "aggressor_side": self.aggressor_side.value,
            "maker_order_id": self.maker_order_id,
            "taker_order_id": self.taker_order_id,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Trade':
        """Create trade from dictionary."""
        return cls(
            trade_id=data["trade_id"],
            symbol=data["symbol"],
            price=parse_price(data["price"]),
            quantity=data["quantity"],
            aggressor_side=OrderSide(data["aggressor_side"]),
            maker_order_id=data["maker_order_id"],
            taker_order_id=data["taker_order_id"],
            timestamp=_parse_timestamp(data["timestamp"]),
        )
