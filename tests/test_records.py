import unittest
from decimal import Decimal

from restock.core.records import (
    DEFAULT_CATEGORY,
    ItemRecord,
    clamp_quantity,
    decode_image,
    name_key,
    to_int,
    to_price,
)


class TestNameKey(unittest.TestCase):
    def test_name_key_trims_collapses_and_casefolds(self):
        self.assertEqual(name_key("  Whole   MILK "), "whole milk")

    def test_name_key_treats_none_as_blank(self):
        self.assertEqual(name_key(None), "")


class TestItemRecord(unittest.TestCase):
    def test_from_item_applies_defaults(self):
        rec = ItemRecord.from_item({"Id": "1", "Name": " Milk "})
        self.assertEqual(rec.name, "Milk")
        self.assertEqual(rec.category, DEFAULT_CATEGORY)
        self.assertEqual(rec.quantity, 0)
        self.assertEqual(rec.price, Decimal(0))

    def test_from_item_blank_category_becomes_general(self):
        rec = ItemRecord.from_item({"Id": "1", "Name": "Milk", "Category": "   "})
        self.assertEqual(rec.category, "General")

    def test_from_item_clamps_negative_quantity_and_price(self):
        rec = ItemRecord.from_item({"Id": "1", "Name": "Milk", "Quantity": Decimal(-4), "Price": Decimal("-1.5")})
        self.assertEqual(rec.quantity, 0)
        self.assertEqual(rec.price, Decimal(0))

    def test_from_image_decodes_attribute_values(self):
        image = {
            "Id": {"S": "abc"},
            "Name": {"S": "Eggs"},
            "Category": {"S": "Dairy"},
            "Quantity": {"N": "12"},
            "Price": {"N": "3.49"},
        }
        rec = ItemRecord.from_image(image)
        self.assertEqual(rec.id, "abc")
        self.assertEqual(rec.quantity, 12)
        self.assertEqual(rec.price, Decimal("3.49"))

    def test_from_image_returns_none_for_missing_image(self):
        self.assertIsNone(ItemRecord.from_image(None))
        self.assertIsNone(decode_image({}))

    def test_to_item_carries_name_key(self):
        row = ItemRecord(id="1", name="Oat Milk", category="Dairy", quantity=2).to_item()
        self.assertEqual(row["NameKey"], "oat milk")
        self.assertEqual(row["Quantity"], 2)

    def test_to_json_shape(self):
        out = ItemRecord(id="1", name="Bread", quantity=1, price=Decimal("2.50")).to_json()
        self.assertEqual(
            out,
            {"Id": "1", "Name": "Bread", "Category": "General", "Quantity": 1, "Price": 2.5, "finished": False},
        )

    def test_with_quantity_never_negative(self):
        rec = ItemRecord(id="1", name="Bread", quantity=0)
        self.assertEqual(rec.with_quantity(rec.quantity - 1).quantity, 0)


class TestClampQuantity(unittest.TestCase):
    def test_decrement_floor_holds_for_range(self):
        for q in range(0, 5):
            self.assertGreaterEqual(clamp_quantity(q - 1), 0)


class TestNumericParsing(unittest.TestCase):
    def test_non_finite_quantity_falls_back_to_default(self):
        for value in ("Infinity", "-Infinity", "NaN", Decimal("Infinity")):
            self.assertEqual(to_int(value, 7), 7)

    def test_non_finite_price_is_zero(self):
        self.assertEqual(to_price("Infinity"), Decimal(0))

    def test_integral_strings_parse(self):
        self.assertEqual(to_int("3"), 3)
        self.assertEqual(to_int(Decimal("4")), 4)


if __name__ == "__main__":
    unittest.main()
