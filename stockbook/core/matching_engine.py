"""
Core matching engine for a single-symbol stock order book.

This module contains the MatchingEngine class that owns one OrderBook,
matches incoming orders against resting liquidity in price-time priority,
records trades in the book's ledger and snapshots the book on demand.
"""

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..storage.snapshot import LoadStatus, SnapshotStore
from ..utils.performance import PerformanceMonitor, measure_latency
from .errors import InvalidOrderError, PersistError, PersistErrorKind
from .order import Order, Trade
from .order_book import BookSide, OrderBook
from .order_types import OrderSide

logger = logging.getLogger(__name__)


@dataclass
class SubmitResult:
    """
    Outcome of one submission.

    ``order`` is the submitted order with its quantity reduced by what
    filled; ``remainder`` is the same order when it came to rest on the
    book, or None when it filled completely.
    """
    order: Order
    submitted_quantity: int
    remainder: Optional[Order] = None
    trades: List[Trade] = field(default_factory=list)

    @property
    def filled_quantity(self) -> int:
        return self.submitted_quantity - self.order.quantity

    @property
    def is_fully_filled(self) -> bool:
        return self.order.quantity == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order": self.order.to_dict(),
            "submitted_quantity": self.submitted_quantity,
            "filled_quantity": self.filled_quantity,
            "remainder": self.remainder.to_dict() if self.remainder else None,
            "trades": [trade.to_dict() for trade in self.trades],
        }


class MatchingEngine:
    """
    Price-priority matching engine for one stock symbol.

    Features:
    - Price-time priority matching (FIFO within a price level)
    - Executions at the resting order's price
    - Decimal prices and exact integer share quantities
    - Crash-atomic snapshots of the whole book

    Submissions, views and snapshots are serialized by one re-entrant lock,
    so a submission always runs to completion before anything else sees or
    persists the book.
    """

    def __init__(
        self,
        symbol: str = "AAPL",
        book: Optional[OrderBook] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
    ):
        """
        Initialize the matching engine.

        Args:
            symbol: Symbol for a fresh empty book (ignored when book is given)
            book: Existing book to take ownership of
            performance_monitor: Optional monitor recording submit latency
        """
        self.book = book if book is not None else OrderBook(symbol)
        self.performance_monitor = performance_monitor
        self._lock = threading.RLock()
        self._submitting_thread: Optional[int] = None
        self._deferred: List[Callable[[], None]] = []

        # Callbacks for executed trades
        self.trade_callbacks: List[Callable[[Trade], None]] = []

        # Statistics
        self.total_orders_processed = 0
        self.total_orders_rejected = 0
        self.total_trades_executed = 0
        self.total_volume = 0
        self.total_notional = Decimal('0')

        self.start_time = datetime.now(timezone.utc)

        logger.info(f"Matching engine initialized for {self.book.symbol}")

    @property
    def symbol(self) -> str:
        return self.book.symbol

    def submit(self, symbol: str, price: Any, quantity: int, side: Any) -> SubmitResult:
        """
        Build an order from raw fields and submit it.

        Args:
            symbol: Stock symbol; must match the book's symbol
            price: Limit price (str, int, Decimal or float)
            quantity: Whole number of shares
            side: OrderSide or "buy"/"sell"

        Returns:
            SubmitResult with the remainder (if any) and trades in emission order

        Raises:
            InvalidOrderError: If the order is malformed; the book is untouched
        """
        try:
            order = Order(symbol=symbol, side=side, price=price, quantity=quantity)
        except InvalidOrderError as e:
            self._record_rejection(f"{side} {quantity} {symbol} @ {price}", e)
            raise
        return self.submit_order(order)

    def submit_order(self, order: Order) -> SubmitResult:
        """
        Match an order against the opposite side and rest any remainder.

        Args:
            order: The order to submit; its quantity is decremented as it fills

        Returns:
            SubmitResult with the remainder (if any) and trades in emission order

        Raises:
            InvalidOrderError: If the order does not belong to this book or
                has no quantity; the book is untouched
        """
        with self._lock:
            if order.symbol != self.book.symbol:
                error = InvalidOrderError(
                    f"Order symbol {order.symbol} does not match book symbol {self.book.symbol}"
                )
                self._record_rejection(order.order_id, error)
                raise error
            if order.quantity <= 0:
                error = InvalidOrderError(f"Order {order.order_id} has no quantity to match")
                self._record_rejection(order.order_id, error)
                raise error

            self._submitting_thread = threading.get_ident()
            try:
                if self.performance_monitor is not None:
                    with measure_latency(self.performance_monitor, "submit"):
                        result = self._process_order(order)
                    self.performance_monitor.increment_counter("orders_submitted")
                else:
                    result = self._process_order(order)
            finally:
                self._submitting_thread = None
            deferred, self._deferred = self._deferred, []

        self._notify_trades(result.trades)
        for action in deferred:
            action()
        return result

    def run_when_idle(self, action: Callable[[], None]) -> None:
        """
        Run action now, or right after the in-flight submission when called
        from inside it on the submitting thread (e.g. by a signal handler).

        Exceptions raised by a deferred action propagate out of the submit
        call, after the book and ledger are fully updated.
        """
        if self._submitting_thread == threading.get_ident():
            self._deferred.append(action)
            return
        action()

    def _process_order(self, order: Order) -> SubmitResult:
        submitted_quantity = order.quantity
        opposite = self.book.opposite(order.side)

        trades = self._match(order, opposite)
        for trade in trades:
            self.book.ledger.append(trade)

        remainder = None
        if order.quantity > 0:
            self.book.side(order.side).insert(order)
            remainder = order

        # Update statistics
        self.total_orders_processed += 1
        self.total_trades_executed += len(trades)
        for trade in trades:
            self.total_volume += trade.quantity
            self.total_notional += trade.notional_value

        if remainder is not None:
            logger.info(
                f"Processed order {order.order_id}: {len(trades)} trades executed, "
                f"{remainder.quantity} resting at {remainder.price}"
            )
        else:
            logger.info(f"Processed order {order.order_id}: {len(trades)} trades executed, fully filled")

        return SubmitResult(order=order, submitted_quantity=submitted_quantity, remainder=remainder, trades=trades)

    def _match(self, incoming: Order, opposite: BookSide) -> List[Trade]:
        """
        Walk the opposite side best first while the incoming order crosses.

        Each execution takes the smaller of the two quantities at the
        resting order's price. Resting orders that reach zero are removed
        by BookSide.reduce_best.
        """
        trades: List[Trade] = []

        while incoming.quantity > 0 and not opposite.is_empty():
            resting = opposite.peek_best()
            if not incoming.crosses(resting):
                break

            traded = min(incoming.quantity, resting.quantity)
            trades.append(
                Trade(
                    symbol=incoming.symbol,
                    price=resting.price,
                    quantity=traded,
                    aggressor_side=incoming.side,
                    maker_order_id=resting.order_id,
                    taker_order_id=incoming.order_id,
                )
            )

            incoming.quantity -= traded
            opposite.reduce_best(traded)

            logger.debug(
                f"Matched {traded} {incoming.symbol} at {resting.price}: "
                f"taker {incoming.order_id}, maker {resting.order_id}"
            )

        return trades

    def _record_rejection(self, reference: str, error: Exception) -> None:
        with self._lock:
            self.total_orders_rejected += 1
        if self.performance_monitor is not None:
            self.performance_monitor.increment_counter("orders_rejected")
        logger.warning(f"Rejected order {reference}: {str(error)}")

    def view_book(self) -> Tuple[List[Order], List[Order]]:
        """
        Copies of the resting orders, best first on each side.

        Returns:
            Tuple of (bids, asks)
        """
        with self._lock:
            bids = [dataclasses.replace(order) for order in self.book.bids.orders()]
            asks = [dataclasses.replace(order) for order in self.book.asks.orders()]
        return bids, asks

    def trade_history(self) -> List[Trade]:
        """All trades executed against the book, in emission order."""
        with self._lock:
            return self.book.ledger.all()

    def get_bbo(self) -> Tuple[Optional[Decimal], Optional[Decimal]]:
        """Get Best Bid and Offer."""
        with self._lock:
            return self.book.get_bbo()

    def get_depth(self, depth: int = 10) -> Dict[str, List[List[Any]]]:
        with self._lock:
            return {"bids": self.book.bids.depth(depth), "asks": self.book.asks.depth(depth)}

    def save_snapshot(self, path: str) -> Tuple[bool, Optional[PersistError]]:
        """
        Write the whole book to a snapshot file.

        Args:
            path: Snapshot file path

        Returns:
            Tuple of (saved, error); a failed save leaves any previous
            snapshot at path untouched
        """
        store = SnapshotStore(path)
        with self._lock:
            try:
                store.save(self.book)
            except PersistError as e:
                logger.error(f"Error saving snapshot: {str(e)}")
                return False, e
        return True, None

    def load_snapshot(self, path: str) -> Tuple[LoadStatus, Optional[PersistError]]:
        """
        Replace the book with the one stored at path.

        A missing or empty snapshot, or a corrupt one, leaves the engine with
        an empty book for its current symbol. A read failure keeps the
        current book.

        Args:
            path: Snapshot file path

        Returns:
            Tuple of (status, error)
        """
        store = SnapshotStore(path)
        with self._lock:
            try:
                book = store.load()
            except PersistError as e:
                if e.kind is PersistErrorKind.CORRUPT:
                    logger.error(f"Snapshot is corrupted, starting with an empty book: {str(e)}")
                    self.book = OrderBook(self.book.symbol)
                    return LoadStatus.CORRUPT, e
                logger.error(f"Error loading snapshot, keeping current book: {str(e)}")
                return LoadStatus.FAILED, e

            if book is None:
                self.book = OrderBook(self.book.symbol)
                return LoadStatus.NOT_FOUND, None

            if book.symbol != self.book.symbol:
                logger.warning(f"Snapshot book symbol {book.symbol} replaces {self.book.symbol}")
            self.book = book
            return LoadStatus.LOADED, None

    def add_trade_callback(self, callback: Callable[[Trade], None]) -> None:
        """Add callback for trade executions."""
        self.trade_callbacks.append(callback)

    def _notify_trades(self, trades: List[Trade]) -> None:
        """Notify trade callbacks."""
        for trade in trades:
            for callback in self.trade_callbacks:
                try:
                    callback(trade)
                except Exception as e:
                    logger.error(f"Error in trade callback: {str(e)}")

    def get_statistics(self) -> Dict[str, Any]:
        """Get engine statistics."""
        uptime = datetime.now(timezone.utc) - self.start_time

        with self._lock:
            stats = {
                "uptime_seconds": uptime.total_seconds(),
                "total_orders_processed": self.total_orders_processed,
                "total_orders_rejected": self.total_orders_rejected,
                "total_trades_executed": self.total_trades_executed,
                "total_volume": self.total_volume,
                "total_notional": str(self.total_notional),
                "orders_per_second": self.total_orders_processed / max(uptime.total_seconds(), 1),
                "book": self.book.get_statistics(),
            }

        if self.performance_monitor is not None:
            stats["submit_latency_ms"] = self.performance_monitor.get_metric_stats("submit_latency_ms")

        return stats
