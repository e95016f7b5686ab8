"""
Append-only trade ledger.
"""

from decimal import Decimal
from typing import Iterable, Iterator, List

from .order import Trade


class TradeLedger:
    """
    Ordered record of every trade executed against one book.

    Trades are only ever appended; nothing is removed or reordered.
    """

    def __init__(self, trades: Iterable[Trade] = ()):
        self._trades: List[Trade] = []
        for trade in trades:
            self.append(trade)

    def append(self, trade: Trade) -> None:
        if not isinstance(trade, Trade):
            raise TypeError(f"Ledger only accepts Trade records, got {type(trade).__name__}")
        self._trades.append(trade)

    def all(self) -> List[Trade]:
        """Return a copy of the trades in emission order."""
        return list(self._trades)

    @property
    def total_quantity(self) -> int:
        return sum(trade.quantity for trade in self._trades)

    @property
    def total_notional(self) -> Decimal:
        return sum((trade.notional_value for trade in self._trades), Decimal('0'))

    @property
    def last_price(self):
        return self._trades[-1].price if self._trades else None

    def __iter__(self) -> Iterator[Trade]:
        return iter(list(self._trades))

    def __len__(self) -> int:
        return len(self._trades)

    def __eq__(self, other) -> bool:
        if not isinstance(other, TradeLedger):
            return NotImplemented
        return self._trades == other._trades

    def __repr__(self) -> str:
        return f"TradeLedger(trades={len(self._trades)})"
