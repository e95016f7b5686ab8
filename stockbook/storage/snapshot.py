"""
Durable snapshots of an order book.

A snapshot holds both book sides and the trade ledger as one versioned
JSON document. Saves write a temporary file beside the target and swap it
in with os.replace, so a crash leaves either the old snapshot or the new
one on disk, never a partial file.
"""

import json
import logging
import os
import tempfile
from decimal import InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from ..core.errors import PersistError, PersistErrorKind
from ..core.ledger import TradeLedger
from ..core.order import Order, Trade
from ..core.order_book import OrderBook
from ..core.order_types import OrderSide

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class LoadStatus(Enum):
    """Outcome of restoring a book from a snapshot."""
    LOADED = "loaded"
    NOT_FOUND = "not_found"
    CORRUPT = "corrupt"
    FAILED = "failed"


def encode_book(book: OrderBook) -> Dict[str, Any]:
    """
    Build the snapshot document for a book.

    Orders are listed best first, so re-inserting them in list order keeps
    arrival order within each price level.
    """
    return {
        "version": SNAPSHOT_VERSION,
        "symbol": book.symbol,
        "buy_orders": [order.to_dict() for order in book.bids.orders()],
        "sell_orders": [order.to_dict() for order in book.asks.orders()],
        "trade_history": [trade.to_dict() for trade in book.ledger.all()],
    }


def _decode_orders(items: Any, side: OrderSide, symbol: str) -> List[Order]:
    if not isinstance(items, list):
        raise ValueError(f"{side.value} orders must be a list")

    orders = []
    for item in items:
        if not isinstance(item, dict):
            raise ValueError(f"{side.value} order entry must be an object")
        order = Order.from_dict(item)
        if order.side is not side:
            raise ValueError(f"Order {order.order_id} is stored on the {side.value} side but is a {order.side.value} order")
        if order.symbol != symbol:
            raise ValueError(f"Order {order.order_id} has symbol {order.symbol}, expected {symbol}")
        orders.append(order)
    return orders


def decode_book(data: Any) -> OrderBook:
    """
    Rebuild a book from a snapshot document.

    Every order goes back through BookSide.insert, so price priority is
    re-established regardless of how the stored lists are ordered.

    Raises:
        ValueError, KeyError, TypeError, InvalidOperation: If the document
            does not match the snapshot schema
    """
    if not isinstance(data, dict):
        raise ValueError("Snapshot must be a JSON object")

    version = data.get("version")
    if version != SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version: {version!r}")

    symbol = data["symbol"]
    if not isinstance(symbol, str):
        raise ValueError("Snapshot symbol must be a string")

    trades = data["trade_history"]
    if not isinstance(trades, list):
        raise ValueError("Trade history must be a list")

    ledger = TradeLedger(Trade.from_dict(item) for item in trades)
    book = OrderBook(symbol, ledger=ledger)

    for trade in ledger:
        if trade.symbol != book.symbol:
            raise ValueError(f"Trade {trade.trade_id} has symbol {trade.symbol}, expected {book.symbol}")

    seen_ids = set()
    for side, key in ((OrderSide.BUY, "buy_orders"), (OrderSide.SELL, "sell_orders")):
        for order in _decode_orders(data[key], side, book.symbol):
            if order.order_id in seen_ids:
                raise ValueError(f"Duplicate order id in snapshot: {order.order_id}")
            seen_ids.add(order.order_id)
            book.side(side).insert(order)

    if book.is_crossed():
        raise ValueError("Snapshot book is crossed")

    return book


class SnapshotStore:
    """
    Reads and writes book snapshots at one path.
    """

    def __init__(self, path: str):
        """
        Args:
            path: Location of the durable snapshot file
        """
        self.path = os.fspath(path)

    def save(self, book: OrderBook) -> None:
        """
        Atomically replace the snapshot with the given book.

        The previous snapshot stays intact if anything fails before the
        final replace.

        Raises:
            PersistError: With kind WRITE on any serialization or I/O failure
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        tmp_path = None
        try:
            payload = json.dumps(encode_book(book), indent=2)

            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{os.path.basename(self.path)}.", suffix=".tmp", dir=directory
            )
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())

            os.replace(tmp_path, self.path)
            tmp_path = None
            self._sync_directory(directory)
        except (OSError, TypeError, ValueError) as e:
            raise PersistError(PersistErrorKind.WRITE, self.path, str(e), cause=e) from e
        finally:
            if tmp_path is not None:
                self._discard(tmp_path)

        logger.info(
            f"Saved snapshot {self.path}: {len(book.bids)} bids, {len(book.asks)} asks, "
            f"{len(book.ledger)} trades"
        )

    def load(self) -> Optional[OrderBook]:
        """
        Restore the book from the snapshot.

        Returns:
            The restored book, or None when no snapshot exists or the file
            is empty

        Raises:
            PersistError: With kind READ on I/O failure, CORRUPT when the
                contents do not decode into a valid book
        """
        try:
            if not os.path.exists(self.path) or os.path.getsize(self.path) == 0:
                logger.info(f"No snapshot found at {self.path}")
                return None
            with open(self.path, "rb") as handle:
                raw = handle.read()
        except OSError as e:
            raise PersistError(PersistErrorKind.READ, self.path, str(e), cause=e) from e

        try:
            book = decode_book(json.loads(raw))
        except (ValueError, KeyError, TypeError, InvalidOperation, RecursionError) as e:
            raise PersistError(PersistErrorKind.CORRUPT, self.path, str(e), cause=e) from e

        logger.info(
            f"Loaded snapshot {self.path}: {len(book.bids)} bids, {len(book.asks)} asks, "
            f"{len(book.ledger)} trades"
        )
        return book

    @staticmethod
    def _discard(path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            logger.warning(f"Could not remove temporary snapshot {path}: {str(e)}")

    @staticmethod
    def _sync_directory(directory: str) -> None:
        """Flush the rename to disk where the platform allows opening directories."""
        if not hasattr(os, "O_DIRECTORY"):
            return
        try:
            fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
        except OSError:
            return
        try:
            os.fsync(fd)
        except OSError as e:
            logger.debug(f"Directory fsync skipped for {directory}: {str(e)}")
        finally:
            os.close(fd)
