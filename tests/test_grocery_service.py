import unittest
from types import SimpleNamespace
from unittest.mock import patch

from fastapi import HTTPException

from fakes import FakeTable
from restock.services import grocery
from restock.services.cache import NullCache, TTLCache


def _tables(rows=None):
    return SimpleNamespace(grocery=FakeTable(rows))


class TestListGrocery(unittest.TestCase):
    def test_second_call_within_ttl_is_served_from_cache(self):
        tables = _tables([{"Id": "g1", "Name": "Milk", "Quantity": 1}])
        cache = TTLCache(30)
        with patch.object(grocery, "T", tables):
            first = grocery.list_items(cache)
            tables.grocery.rows["g2"] = {"Id": "g2", "Name": "Eggs", "Quantity": 1}
            second = grocery.list_items(cache)
        self.assertEqual(first, second)
        self.assertEqual(tables.grocery.calls.count("scan"), 1)

    def test_null_cache_always_scans(self):
        tables = _tables([{"Id": "g1", "Name": "Milk", "Quantity": 1}])
        with patch.object(grocery, "T", tables):
            grocery.list_items(NullCache())
            items = grocery.list_items(NullCache())
        self.assertEqual(tables.grocery.calls.count("scan"), 2)
        self.assertEqual(items[0]["finished"], False)


class TestDeleteItem(unittest.TestCase):
    def test_delete_removes_row(self):
        tables = _tables([{"Id": "g1", "Name": "Milk"}])
        with patch.object(grocery, "T", tables):
            grocery.delete_item("g1")
        self.assertEqual(tables.grocery.rows, {})

    def test_blank_id_is_400(self):
        tables = _tables()
        with patch.object(grocery, "T", tables):
            with self.assertRaises(HTTPException) as ctx:
                grocery.delete_item(" ")
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(tables.grocery.calls, [])


class TestUpdateStock(unittest.TestCase):
    def test_overwrites_quantity(self):
        tables = _tables([{"Id": "g1", "Name": "Milk", "Category": "Dairy", "Quantity": 1, "Note": "x"}])
        with patch.object(grocery, "T", tables):
            record = grocery.update_stock("g1", 6)
        self.assertEqual(record.quantity, 6)
        self.assertEqual(tables.grocery.rows["g1"]["Quantity"], 6)
        self.assertEqual(tables.grocery.rows["g1"]["Note"], "x")

    def test_negative_quantity_clamped(self):
        tables = _tables([{"Id": "g1", "Name": "Milk", "Quantity": 1}])
        with patch.object(grocery, "T", tables):
            record = grocery.update_stock("g1", -3)
        self.assertEqual(record.quantity, 0)

    def test_unknown_id_is_404(self):
        with patch.object(grocery, "T", _tables()):
            with self.assertRaises(HTTPException) as ctx:
                grocery.update_stock("nope", 1)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_missing_quantity_is_400(self):
        with patch.object(grocery, "T", _tables([{"Id": "g1", "Name": "Milk"}])):
            with self.assertRaises(HTTPException) as ctx:
                grocery.update_stock("g1", None)
        self.assertEqual(ctx.exception.status_code, 400)


if __name__ == "__main__":
    unittest.main()
