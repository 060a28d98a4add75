"""Single conversion point between store rows / stream images and typed records.

Defaults are applied here once: blank category becomes "General", missing
quantity and price become 0, and both are floored at 0. Names are trimmed for
display and compared through ``name_key`` (trimmed, inner whitespace collapsed,
casefolded) so "Milk", " milk " and "MILK" aggregate into one grocery row.
"""
from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional

from boto3.dynamodb.types import TypeDeserializer

DEFAULT_CATEGORY = "General"

_deserializer = TypeDeserializer()
_WS = re.compile(r"\s+")


def clean_name(value: Any) -> str:
    if value is None:
        return ""
    return _WS.sub(" ", str(value).strip())


def name_key(value: Any) -> str:
    return clean_name(value).casefold()


def clean_category(value: Any) -> str:
    s = clean_name(value)
    return s or DEFAULT_CATEGORY


def clamp_quantity(value: int) -> int:
    return max(0, int(value))


def to_int(value: Any, default: int = 0) -> int:
    if value is None or value == "":
        return default
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, OverflowError):
        return default


def to_price(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal(0)
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        return Decimal(0)
    if not price.is_finite() or price < 0:
        return Decimal(0)
    return price


def new_id() -> str:
    return str(uuid.uuid4())


def decode_image(image: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Typed attribute-value map (``{"Name": {"S": "Milk"}}``) to a plain row."""
    if not image:
        return None
    return {k: _deserializer.deserialize(v) for k, v in image.items()}


@dataclass(frozen=True)
class ItemRecord:
    id: str
    name: str
    category: str = DEFAULT_CATEGORY
    quantity: int = 0
    price: Decimal = Decimal(0)

    @property
    def name_key(self) -> str:
        return name_key(self.name)

    @classmethod
    def from_item(cls, row: Mapping[str, Any]) -> "ItemRecord":
        return cls(
            id=str(row.get("Id") or ""),
            name=clean_name(row.get("Name")),
            category=clean_category(row.get("Category")),
            quantity=clamp_quantity(to_int(row.get("Quantity"))),
            price=to_price(row.get("Price")),
        )

    @classmethod
    def from_image(cls, image: Optional[Mapping[str, Any]]) -> Optional["ItemRecord"]:
        row = decode_image(image)
        if row is None:
            return None
        return cls.from_item(row)

    def with_quantity(self, quantity: int) -> "ItemRecord":
        return replace(self, quantity=clamp_quantity(quantity))

    def to_item(self) -> Dict[str, Any]:
        return {
            "Id": self.id,
            "Name": self.name,
            "NameKey": self.name_key,
            "Category": self.category,
            "Quantity": self.quantity,
            "Price": self.price,
        }

    def to_json(self) -> Dict[str, Any]:
        price = float(self.price)
        return {
            "Id": self.id,
            "Name": self.name,
            "Category": self.category,
            "Quantity": self.quantity,
            "Price": price,
            "finished": False,
        }
