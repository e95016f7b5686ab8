"""
Order book implementation with price-time priority.

Each book side keeps a heap of price levels for O(1) best-price lookup and
O(log n) level insertion, with a deque per level so orders at the same
price are matched first-in-first-out.
"""

import heapq
import logging
from collections import deque
from decimal import Decimal
from typing import Any, Deque, Dict, List, Optional, Tuple

from .errors import InvalidOrderError
from .ledger import TradeLedger
from .order import Order
from .order_types import OrderSide

logger = logging.getLogger(__name__)


class PriceLevel:
    """
    Represents a price level in the order book.

    Maintains orders at the same price in FIFO order to ensure time
    priority within the level.
    """

    def __init__(self, price: Decimal):
        """
        Initialize a price level.

        Args:
            price: The price shared by every order in this level
        """
        self.price = price
        self.orders: Deque[Order] = deque()
        self.total_quantity = 0

    def add_order(self, order: Order) -> None:
        self.orders.append(order)
        self.total_quantity += order.quantity
        logger.debug(f"Added order {order.order_id} to price level {self.price}")

    def peek(self) -> Order:
        return self.orders[0]

    def pop(self) -> Order:
        order = self.orders.popleft()
        self.total_quantity -= order.quantity
        return order

    def is_empty(self) -> bool:
        """Check if this price level is empty."""
        return len(self.orders) == 0

    def __len__(self) -> int:
        return len(self.orders)

    def __repr__(self) -> str:
        return f"PriceLevel(price={self.price}, orders={len(self.orders)}, quantity={self.total_quantity})"


class BookSide:
    """
    Resting orders for one side of the book, best price first.

    Bids are ordered by descending price, asks by ascending price. The
    heap holds one key per live level (negated for bids), and levels are
    only ever removed from the top, so the heap never carries stale keys.
    """

    def __init__(self, side: OrderSide):
        self.side = side
        self.levels: Dict[Decimal, PriceLevel] = {}
        self._heap: List[Decimal] = []
        self._order_count = 0

    def _key(self, price: Decimal) -> Decimal:
        return price.copy_negate() if self.side is OrderSide.BUY else price

    def insert(self, order: Order) -> None:
        """
        Rest an order on this side, behind any orders already at its price.

        Raises:
            InvalidOrderError: If the order belongs to the other side or has
                no quantity left
        """
        if order.side is not self.side:
            raise InvalidOrderError(f"Cannot rest a {order.side.value} order on the {self.side.value} side")
        if order.quantity <= 0:
            raise InvalidOrderError(f"Cannot rest order {order.order_id} with quantity {order.quantity}")

        level = self.levels.get(order.price)
        if level is None:
            level = PriceLevel(order.price)
            self.levels[order.price] = level
            heapq.heappush(self._heap, self._key(order.price))

        level.add_order(order)
        self._order_count += 1

    def is_empty(self) -> bool:
        return not self._heap

    def best_price(self) -> Optional[Decimal]:
        if not self._heap:
            return None
        return self._heap[0] if self.side is OrderSide.SELL else self._heap[0].copy_negate()

    def _best_level(self) -> PriceLevel:
        if not self._heap:
            raise IndexError(f"{self.side.value} side is empty")
        return self.levels[self.best_price()]

    def peek_best(self) -> Order:
        """Return the highest-priority order without removing it."""
        return self._best_level().peek()

    def pop_best(self) -> Order:
        """Remove and return the highest-priority order."""
        level = self._best_level()
        order = level.pop()
        self._order_count -= 1

        if level.is_empty():
            heapq.heappop(self._heap)
            del self.levels[level.price]

        return order

    def reduce_best(self, quantity: int) -> Order:
        """
        Take quantity off the best order in place.

        The order keeps its position since its price is unchanged. An order
        left with zero quantity is removed from the side.

        Returns:
            The order that was reduced
        """
        level = self._best_level()
        order = level.peek()
        if quantity <= 0 or quantity > order.quantity:
            raise ValueError(f"Cannot reduce order {order.order_id} of {order.quantity} by {quantity}")

        order.quantity -= quantity
        level.total_quantity -= quantity

        if order.quantity == 0:
            self.pop_best()

        return order

    def orders(self) -> List[Order]:
        """
        Enumerate every resting order exactly once, best first.

        Orders at the same price appear in arrival order.
        """
        result: List[Order] = []
        for price in self._sorted_prices():
            result.extend(self.levels[price].orders)
        return result

    def depth(self, levels: int = 10) -> List[List[Any]]:
        """
        Aggregated quantity per price level.

        Returns:
            List of [price, quantity, order_count] entries, best first
        """
        return [
            [str(price), self.levels[price].total_quantity, len(self.levels[price])]
            for price in self._sorted_prices()[:levels]
        ]

    def _sorted_prices(self) -> List[Decimal]:
        return sorted(self.levels.keys(), reverse=(self.side is OrderSide.BUY))

    @property
    def total_quantity(self) -> int:
        return sum(level.total_quantity for level in self.levels.values())

    def __len__(self) -> int:
        return self._order_count

    def __repr__(self) -> str:
        return f"BookSide(side={self.side.value}, levels={len(self.levels)}, orders={self._order_count})"


class OrderBook:
    """
    The full book for one symbol: bid side, ask side and trade ledger.

    The book is the unit of persistence. It is owned by a single
    MatchingEngine, which is the only component that mutates it.
    """

    def __init__(self, symbol: str, ledger: Optional[TradeLedger] = None):
        """
        Initialize an empty order book.

        Args:
            symbol: Stock symbol traded in this book (e.g., "AAPL")
            ledger: Existing trade ledger to continue, if any
        """
        if not isinstance(symbol, str) or not symbol.strip():
            raise ValueError("Book symbol cannot be empty")

        self.symbol = symbol.strip()
        self.bids = BookSide(OrderSide.BUY)
        self.asks = BookSide(OrderSide.SELL)
        self.ledger = ledger if ledger is not None else TradeLedger()

    def side(self, side: OrderSide) -> BookSide:
        return self.bids if side is OrderSide.BUY else self.asks

    def opposite(self, side: OrderSide) -> BookSide:
        return self.asks if side is OrderSide.BUY else self.bids

    def get_bbo(self) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """
        Get Best Bid and Offer (BBO).

        Returns:
            Tuple of (best_bid, best_ask) prices
        """
        return self.bids.best_price(), self.asks.best_price()

    def is_crossed(self) -> bool:
        best_bid, best_ask = self.get_bbo()
        return best_bid is not None and best_ask is not None and best_bid >= best_ask

    def is_empty(self) -> bool:
        return self.bids.is_empty() and self.asks.is_empty() and len(self.ledger) == 0

    def get_statistics(self) -> Dict[str, Any]:
        """Get order book statistics."""
        best_bid, best_ask = self.get_bbo()
        spread = best_ask - best_bid if best_bid is not None and best_ask is not None else None
        last_price = self.ledger.last_price

        return {
            "symbol": self.symbol,
            "best_bid": str(best_bid) if best_bid is not None else None,
            "best_ask": str(best_ask) if best_ask is not None else None,
            "spread": str(spread) if spread is not None else None,
            "total_bid_quantity": self.bids.total_quantity,
            "total_ask_quantity": self.asks.total_quantity,
            "bid_levels": len(self.bids.levels),
            "ask_levels": len(self.asks.levels),
            "resting_orders": len(self.bids) + len(self.asks),
            "trade_count": len(self.ledger),
            "last_trade_price": str(last_price) if last_price is not None else None,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, OrderBook):
            return NotImplemented
        return (
            self.symbol == other.symbol
            and self.bids.orders() == other.bids.orders()
            and self.asks.orders() == other.asks.orders()
            and self.ledger == other.ledger
        )

    def __repr__(self) -> str:
        return f"OrderBook(symbol={self.symbol}, bids={len(self.bids)}, asks={len(self.asks)}, trades={len(self.ledger)})"
