"""
Tests for order and trade records.
"""

import dataclasses
import unittest
from decimal import Decimal

from stockbook.core.errors import InvalidOrderError
from stockbook.core.order import Order, Trade, parse_price, parse_quantity
from stockbook.core.order_types import OrderSide, validate_order_side


class TestPriceParsing(unittest.TestCase):

    def test_exact_inputs_kept(self):
        self.assertEqual(parse_price("100.25"), Decimal("100.25"))
        self.assertEqual(parse_price(" 7 "), Decimal("7"))
        self.assertEqual(parse_price(42), Decimal("42"))
        self.assertEqual(parse_price(Decimal("0.0001")), Decimal("0.0001"))

    def test_float_inputs_quantized(self):
        """0.1 + 0.2 and 0.3 parse to the same price."""
        self.assertEqual(parse_price(0.1 + 0.2), parse_price(0.3))
        self.assertEqual(parse_price(0.1 + 0.2), Decimal("0.3"))

    def test_invalid_prices_rejected(self):
        for value in (0, -1, "0", "-0.5", "abc", "", None, True, float("nan"), float("inf"), "Infinity", 1e-10):
            with self.subTest(value=value):
                with self.assertRaises(InvalidOrderError):
                    parse_price(value)


class TestQuantityParsing(unittest.TestCase):

    def test_positive_integers_accepted(self):
        self.assertEqual(parse_quantity(1), 1)
        self.assertEqual(parse_quantity(10 ** 9), 10 ** 9)

    def test_invalid_quantities_rejected(self):
        for value in (0, -5, 1.5, "5", None, True):
            with self.subTest(value=value):
                with self.assertRaises(InvalidOrderError):
                    parse_quantity(value)


class TestOrderSide(unittest.TestCase):

    def test_side_conversion(self):
        self.assertIs(validate_order_side("BUY"), OrderSide.BUY)
        self.assertIs(validate_order_side(" sell "), OrderSide.SELL)
        self.assertIs(validate_order_side(OrderSide.SELL), OrderSide.SELL)
        self.assertIs(OrderSide.BUY.opposite, OrderSide.SELL)

    def test_invalid_side(self):
        for value in ("hold", "", None, 1):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    validate_order_side(value)


class TestOrder(unittest.TestCase):
    """Test cases for Order."""

    def test_order_creation(self):
        order = Order(symbol="AAPL", side="buy", price="150.50", quantity=10)

        self.assertEqual(order.side, OrderSide.BUY)
        self.assertEqual(order.price, Decimal("150.50"))
        self.assertEqual(order.quantity, 10)
        self.assertTrue(order.order_id)
        self.assertIsNotNone(order.timestamp.tzinfo)

    def test_unique_ids(self):
        first = Order(symbol="AAPL", side=OrderSide.BUY, price="1", quantity=1)
        second = Order(symbol="AAPL", side=OrderSide.BUY, price="1", quantity=1)
        self.assertNotEqual(first.order_id, second.order_id)

    def test_invalid_order_fields(self):
        cases = [
            dict(symbol="", side="buy", price="1", quantity=1),
            dict(symbol="AAPL", side="hold", price="1", quantity=1),
            dict(symbol="AAPL", side="buy", price="0", quantity=1),
            dict(symbol="AAPL", side="buy", price="1", quantity=0),
        ]
        for fields in cases:
            with self.subTest(fields=fields):
                with self.assertRaises(InvalidOrderError):
                    Order(**fields)

    def test_only_quantity_is_mutable(self):
        order = Order(symbol="AAPL", side="sell", price="10", quantity=5)

        order.quantity = 3
        self.assertEqual(order.quantity, 3)

        for name, value in (("price", Decimal("11")), ("side", OrderSide.BUY), ("symbol", "MSFT"), ("order_id", "x")):
            with self.subTest(field=name):
                with self.assertRaises(AttributeError):
                    setattr(order, name, value)

    def test_replace_copies_order(self):
        order = Order(symbol="AAPL", side="sell", price="10", quantity=5)
        copy = dataclasses.replace(order)

        copy.quantity = 1
        self.assertEqual(order.quantity, 5)
        self.assertEqual(copy.order_id, order.order_id)

    def test_crosses(self):
        buy = Order(symbol="AAPL", side="buy", price="100", quantity=1)
        cheap_ask = Order(symbol="AAPL", side="sell", price="99", quantity=1)
        equal_ask = Order(symbol="AAPL", side="sell", price="100", quantity=1)
        dear_ask = Order(symbol="AAPL", side="sell", price="101", quantity=1)

        self.assertTrue(buy.crosses(cheap_ask))
        self.assertTrue(buy.crosses(equal_ask))
        self.assertFalse(buy.crosses(dear_ask))
        self.assertTrue(cheap_ask.crosses(buy))
        self.assertFalse(dear_ask.crosses(buy))

    def test_display(self):
        order = Order(symbol="AAPL", side="buy", price="50.25", quantity=5)
        self.assertEqual(str(order), "BUY 5 shares of AAPL at $50.25")

    def test_dict_round_trip(self):
        order = Order(symbol="AAPL", side="sell", price="0.00000001", quantity=7)
        data = order.to_dict()

        self.assertEqual(data["price"], "1E-8")
        self.assertEqual(data["side"], "sell")
        self.assertEqual(Order.from_dict(data), order)

    def test_from_dict_rejects_bad_timestamp(self):
        data = Order(symbol="AAPL", side="sell", price="1", quantity=1).to_dict()
        data["timestamp"] = 12345
        with self.assertRaises(ValueError):
            Order.from_dict(data)


class TestTrade(unittest.TestCase):
    """Test cases for Trade."""

    def _trade(self, **overrides):
        fields = dict(
            symbol="AAPL",
            price=Decimal("50"),
            quantity=3,
            aggressor_side=OrderSide.BUY,
            maker_order_id="maker",
            taker_order_id="taker",
        )
        fields.update(overrides)
        return Trade(**fields)

    def test_trade_properties(self):
        trade = self._trade()
        self.assertEqual(trade.notional_value, Decimal("150"))
        self.assertEqual(trade.describe(), "TRADE: 3 shares of AAPL at $50")
        self.assertEqual(Trade.from_dict(trade.to_dict()), trade)

    def test_trade_is_immutable(self):
        trade = self._trade()
        with self.assertRaises(dataclasses.FrozenInstanceError):
            trade.quantity = 5

    def test_invalid_trades(self):
        for overrides in (
            dict(quantity=0),
            dict(quantity=True),
            dict(price=Decimal("0")),
            dict(price=50.0),
            dict(symbol=""),
            dict(maker_order_id=""),
            dict(taker_order_id=""),
        ):
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValueError):
                    self._trade(**overrides)


if __name__ == '__main__':
    unittest.main()
