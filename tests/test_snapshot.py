"""
Tests for book snapshots and engine save/load behavior.
"""

import json
import os
import shutil
import tempfile
import unittest
from decimal import Decimal
from unittest.mock import patch

from stockbook.core.errors import PersistError, PersistErrorKind
from stockbook.core.matching_engine import MatchingEngine
from stockbook.core.order import Order
from stockbook.core.order_types import OrderSide
from stockbook.storage.snapshot import SNAPSHOT_VERSION, LoadStatus, SnapshotStore, encode_book


class SnapshotTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.tmp_dir, "stock_orders.json")

    def tearDown(self):
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def populated_engine(self):
        engine = MatchingEngine("AAPL")
        engine.submit("AAPL", "50", 5, OrderSide.SELL)
        engine.submit("AAPL", "55", 3, OrderSide.BUY)
        engine.submit("AAPL", "48", 4, OrderSide.BUY)
        engine.submit("AAPL", "48", 6, OrderSide.BUY)
        engine.submit("AAPL", "60.125", 2, OrderSide.SELL)
        return engine

    def write_raw(self, content):
        with open(self.path, "w", encoding="utf-8") as handle:
            handle.write(content)

    def write_document(self, document):
        self.write_raw(json.dumps(document))


class TestSnapshotStore(SnapshotTestCase):
    """Test cases for SnapshotStore."""

    def test_round_trip(self):
        engine = self.populated_engine()
        SnapshotStore(self.path).save(engine.book)

        loaded = SnapshotStore(self.path).load()

        self.assertEqual(loaded, engine.book)
        self.assertEqual(len(loaded.ledger), 1)
        self.assertEqual([o.quantity for o in loaded.bids.orders()], [4, 6])
        self.assertEqual(loaded.asks.peek_best().quantity, 2)

    def test_document_layout(self):
        engine = self.populated_engine()
        SnapshotStore(self.path).save(engine.book)

        with open(self.path, encoding="utf-8") as handle:
            document = json.load(handle)

        self.assertEqual(document["version"], SNAPSHOT_VERSION)
        self.assertEqual(document["symbol"], "AAPL")
        self.assertEqual([o["price"] for o in document["buy_orders"]], ["48", "48"])
        self.assertEqual([o["price"] for o in document["sell_orders"]], ["50", "60.125"])
        self.assertEqual(document["trade_history"][0]["price"], "50")

    def test_save_creates_parent_directories(self):
        path = os.path.join(self.tmp_dir, "nested", "dir", "book.json")
        SnapshotStore(path).save(self.populated_engine().book)
        self.assertTrue(os.path.exists(path))

    def test_missing_or_empty_file_is_not_found(self):
        self.assertIsNone(SnapshotStore(self.path).load())

        self.write_raw("")
        self.assertIsNone(SnapshotStore(self.path).load())

    def test_invalid_json_is_corrupt(self):
        self.write_raw('{"version": 1, "symbol": ')

        with self.assertRaises(PersistError) as ctx:
            SnapshotStore(self.path).load()
        self.assertIs(ctx.exception.kind, PersistErrorKind.CORRUPT)
        self.assertEqual(ctx.exception.path, self.path)

    def test_deeply_nested_json_is_corrupt(self):
        self.write_raw("[" * 200000 + "]" * 200000)

        with self.assertRaises(PersistError) as ctx:
            SnapshotStore(self.path).load()
        self.assertIs(ctx.exception.kind, PersistErrorKind.CORRUPT)

    def test_undecodable_bytes_are_corrupt(self):
        with open(self.path, "wb") as handle:
            handle.write(b"\xff\xfe\x00garbage")

        with self.assertRaises(PersistError) as ctx:
            SnapshotStore(self.path).load()
        self.assertIs(ctx.exception.kind, PersistErrorKind.CORRUPT)

    def test_schema_violations_are_corrupt(self):
        valid = encode_book(self.populated_engine().book)

        def variant(**changes):
            document = json.loads(json.dumps(valid))
            document.update(changes)
            return document

        bad_quantity = json.loads(json.dumps(valid))
        bad_quantity["buy_orders"][0]["quantity"] = 0
        bad_price = json.loads(json.dumps(valid))
        bad_price["sell_orders"][0]["price"] = "abc"
        wrong_side = json.loads(json.dumps(valid))
        wrong_side["buy_orders"].append(wrong_side["sell_orders"].pop())
        missing_field = json.loads(json.dumps(valid))
        del missing_field["trade_history"][0]["maker_order_id"]
        foreign_trade = json.loads(json.dumps(valid))
        foreign_trade["trade_history"][0]["symbol"] = "MSFT"
        duplicate_id = json.loads(json.dumps(valid))
        duplicate_id["buy_orders"][1]["order_id"] = duplicate_id["buy_orders"][0]["order_id"]
        duplicate_across_sides = json.loads(json.dumps(valid))
        duplicate_across_sides["sell_orders"][0]["order_id"] = duplicate_across_sides["buy_orders"][0]["order_id"]

        documents = [
            [],
            variant(version=99),
            variant(buy_orders="none"),
            variant(symbol=7),
            bad_quantity,
            bad_price,
            wrong_side,
            missing_field,
            foreign_trade,
            duplicate_id,
            duplicate_across_sides,
        ]
        for document in documents:
            with self.subTest(document=document):
                self.write_document(document)
                with self.assertRaises(PersistError) as ctx:
                    SnapshotStore(self.path).load()
                self.assertIs(ctx.exception.kind, PersistErrorKind.CORRUPT)

    def test_crossed_snapshot_is_corrupt(self):
        buy = Order(symbol="AAPL", side=OrderSide.BUY, price="101", quantity=1)
        sell = Order(symbol="AAPL", side=OrderSide.SELL, price="100", quantity=1)
        self.write_document({
            "version": SNAPSHOT_VERSION,
            "symbol": "AAPL",
            "buy_orders": [buy.to_dict()],
            "sell_orders": [sell.to_dict()],
            "trade_history": [],
        })

        with self.assertRaises(PersistError) as ctx:
            SnapshotStore(self.path).load()
        self.assertIs(ctx.exception.kind, PersistErrorKind.CORRUPT)

    def test_unsorted_orders_restored_in_priority_order(self):
        orders = [Order(symbol="AAPL", side=OrderSide.BUY, price=price, quantity=1) for price in ("10", "30", "20")]
        self.write_document({
            "version": SNAPSHOT_VERSION,
            "symbol": "AAPL",
            "buy_orders": [o.to_dict() for o in orders],
            "sell_orders": [],
            "trade_history": [],
        })

        book = SnapshotStore(self.path).load()

        self.assertEqual([o.price for o in book.bids.orders()], [Decimal("30"), Decimal("20"), Decimal("10")])

    def test_failed_replace_keeps_previous_snapshot(self):
        engine = self.populated_engine()
        store = SnapshotStore(self.path)
        store.save(engine.book)
        with open(self.path, "rb") as handle:
            before = handle.read()

        engine.submit("AAPL", "47", 1, OrderSide.BUY)
        with patch("stockbook.storage.snapshot.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(PersistError) as ctx:
                store.save(engine.book)

        self.assertIs(ctx.exception.kind, PersistErrorKind.WRITE)
        with open(self.path, "rb") as handle:
            self.assertEqual(handle.read(), before)
        self.assertEqual(os.listdir(self.tmp_dir), ["stock_orders.json"])

    def test_read_failure(self):
        self.write_raw("{}")
        with patch("stockbook.storage.snapshot.open", side_effect=PermissionError("denied"), create=True):
            with self.assertRaises(PersistError) as ctx:
                SnapshotStore(self.path).load()
        self.assertIs(ctx.exception.kind, PersistErrorKind.READ)


class TestEngineSnapshots(SnapshotTestCase):
    """Test cases for MatchingEngine.save_snapshot and load_snapshot."""

    def test_save_then_load_reproduces_book(self):
        engine = self.populated_engine()
        saved, error = engine.save_snapshot(self.path)
        self.assertTrue(saved)
        self.assertIsNone(error)

        restored = MatchingEngine("AAPL")
        status, error = restored.load_snapshot(self.path)

        self.assertIs(status, LoadStatus.LOADED)
        self.assertIsNone(error)
        self.assertEqual(restored.book, engine.book)
        self.assertEqual(restored.view_book(), engine.view_book())
        self.assertEqual(restored.trade_history(), engine.trade_history())

    def test_restored_book_keeps_matching(self):
        engine = self.populated_engine()
        engine.save_snapshot(self.path)

        restored = MatchingEngine("AAPL")
        restored.load_snapshot(self.path)
        first_bid, second_bid = restored.view_book()[0]
        result = restored.submit("AAPL", "48", 5, OrderSide.SELL)

        self.assertEqual(
            [(t.maker_order_id, t.quantity) for t in result.trades],
            [(first_bid.order_id, 4), (second_bid.order_id, 1)],
        )
        self.assertEqual(len(restored.trade_history()), 3)

    def test_missing_snapshot_gives_empty_book(self):
        engine = self.populated_engine()

        status, error = engine.load_snapshot(self.path)

        self.assertIs(status, LoadStatus.NOT_FOUND)
        self.assertIsNone(error)
        self.assertTrue(engine.book.is_empty())
        self.assertEqual(engine.symbol, "AAPL")

    def test_corrupt_snapshot_gives_empty_book(self):
        engine = self.populated_engine()
        self.write_raw("not json")

        status, error = engine.load_snapshot(self.path)

        self.assertIs(status, LoadStatus.CORRUPT)
        self.assertIs(error.kind, PersistErrorKind.CORRUPT)
        self.assertTrue(engine.book.is_empty())

    def test_deeply_nested_snapshot_gives_empty_book(self):
        engine = self.populated_engine()
        self.write_raw("[" * 200000 + "]" * 200000)

        status, error = engine.load_snapshot(self.path)

        self.assertIs(status, LoadStatus.CORRUPT)
        self.assertIs(error.kind, PersistErrorKind.CORRUPT)
        self.assertTrue(engine.book.is_empty())

    def test_read_failure_keeps_current_book(self):
        engine = self.populated_engine()
        before = engine.view_book()
        self.write_raw("{}")

        with patch("stockbook.storage.snapshot.open", side_effect=PermissionError("denied"), create=True):
            status, error = engine.load_snapshot(self.path)

        self.assertIs(status, LoadStatus.FAILED)
        self.assertIs(error.kind, PersistErrorKind.READ)
        self.assertEqual(engine.view_book(), before)

    def test_failed_save_reports_error(self):
        engine = self.populated_engine()

        with patch("stockbook.storage.snapshot.os.replace", side_effect=OSError("disk full")):
            saved, error = engine.save_snapshot(self.path)

        self.assertFalse(saved)
        self.assertIs(error.kind, PersistErrorKind.WRITE)
        self.assertFalse(os.path.exists(self.path))
        self.assertEqual(os.listdir(self.tmp_dir), [])


if __name__ == '__main__':
    unittest.main()
