"""
Interactive console front end for the stock order book.

Presents a numbered menu for placing orders, viewing the book and trade
history, and saving the book on exit. Input errors are reported and the
user is asked again; nothing typed at the prompt can stop the process.
"""

import logging
from typing import Callable, Optional

from ..api.validators import validate_price, validate_quantity, validate_symbol
from ..core.errors import InvalidOrderError
from ..core.matching_engine import MatchingEngine
from ..core.order_types import OrderSide
from ..utils.logger import log_order_audit

logger = logging.getLogger(__name__)

MENU = """
Stock Market Order Book
1. Place Buy Order
2. Place Sell Order
3. View Order Book
4. View Trade History
5. Save & Exit"""


class ConsoleApp:
    """
    Menu-driven caller of a MatchingEngine.
    """

    def __init__(
        self,
        engine: MatchingEngine,
        snapshot_file: Optional[str] = None,
        input_fn: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        audit_logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            engine: Engine owning the book
            snapshot_file: Where "Save & Exit" writes; None skips saving
            input_fn: Prompt reader
            output: Line writer
            audit_logger: Optional audit trail for order submissions
        """
        self.engine = engine
        self.snapshot_file = snapshot_file
        self.input_fn = input_fn
        self.output = output
        self.audit_logger = audit_logger

    def run(self) -> None:
        """Serve the menu until the user exits or input ends."""
        actions = {
            "1": lambda: self.place_order(OrderSide.BUY),
            "2": lambda: self.place_order(OrderSide.SELL),
            "3": self.view_order_book,
            "4": self.view_trade_history,
        }

        while True:
            self.output(MENU)
            try:
                choice = self.input_fn("Choose an option: ").strip()
                if choice == "5":
                    break
                action = actions.get(choice)
                if action is None:
                    self.output("Invalid choice. Try again.")
                    continue
                action()
            except EOFError:
                self.output("")
                break

        self.save_and_exit()

    def _ask(self, prompt: str, validate: Callable):
        while True:
            result = validate(self.input_fn(prompt).strip())
            if result[0]:
                return result[-1]
            self.output(f"Invalid input: {result[1]}")

    def _ask_symbol(self) -> str:
        while True:
            symbol = self.input_fn(f"Enter stock symbol [{self.engine.symbol}]: ").strip().upper()
            if not symbol:
                return self.engine.symbol
            is_valid, error = validate_symbol(symbol)
            if is_valid:
                return symbol
            self.output(f"Invalid input: {error}")

    def place_order(self, side: OrderSide) -> None:
        symbol = self._ask_symbol()
        price = self._ask("Enter price: ", validate_price)
        quantity = self._ask("Enter quantity: ", validate_quantity)

        try:
            result = self.engine.submit(symbol, price, quantity, side)
        except InvalidOrderError as e:
            if self.audit_logger is not None:
                log_order_audit(self.audit_logger, "REJECT", {
                    "symbol": symbol, "side": side.value, "quantity": quantity, "price": str(price),
                })
            self.output(f"Order rejected: {str(e)}")
            return

        if self.audit_logger is not None:
            log_order_audit(self.audit_logger, "SUBMIT", dict(result.order.to_dict(), quantity=result.submitted_quantity))

        for trade in result.trades:
            self.output(trade.describe())

        label = side.value.capitalize()
        if result.remainder is not None:
            self.output(f"{label} order placed: {result.remainder.quantity} shares of {symbol} at {price} resting")
        else:
            self.output(f"{label} order filled: {quantity} shares of {symbol}")

    def view_order_book(self) -> None:
        bids, asks = self.engine.view_book()
        self.output("\n--- BUY ORDERS ---")
        for order in bids:
            self.output(str(order))
        self.output("\n--- SELL ORDERS ---")
        for order in asks:
            self.output(str(order))

    def view_trade_history(self) -> None:
        self.output("\n--- TRADE HISTORY ---")
        for trade in self.engine.trade_history():
            self.output(trade.describe())

    def save_and_exit(self) -> None:
        if self.snapshot_file:
            saved, error = self.engine.save_snapshot(self.snapshot_file)
            if saved:
                self.output("Data saved successfully.")
            else:
                self.output(f"Error saving data: {error.message}")
        self.output("Exiting...")
