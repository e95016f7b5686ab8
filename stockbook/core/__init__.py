"""
Core matching engine components.

This module contains the order and trade records, the price-priority
book sides, the trade ledger and the matching engine that drives them.
"""

from .errors import InvalidOrderError, PersistError, PersistErrorKind
from .order_types import OrderSide
from .order import Order, Trade
from .ledger import TradeLedger
from .order_book import OrderBook, BookSide, PriceLevel
from .matching_engine import MatchingEngine, SubmitResult

__all__ = [
    "InvalidOrderError",
    "PersistError",
    "PersistErrorKind",
    "OrderSide",
    "Order",
    "Trade",
    "TradeLedger",
    "OrderBook",
    "BookSide",
    "PriceLevel",
    "MatchingEngine",
    "SubmitResult",
]
