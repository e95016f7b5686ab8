"""
Price-priority stock order book with a crash-safe snapshot store.
"""

from .core import MatchingEngine, OrderBook, Order, Trade, OrderSide, InvalidOrderError, PersistError
from .storage import SnapshotStore, LoadStatus

__version__ = "1.0.0"

__all__ = [
    "MatchingEngine",
    "OrderBook",
    "Order",
    "Trade",
    "OrderSide",
    "InvalidOrderError",
    "PersistError",
    "SnapshotStore",
    "LoadStatus",
]
