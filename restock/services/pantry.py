from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from boto3.dynamodb.conditions import Key

from restock.core.errors import NotFoundError, ValidationError
from restock.core.log import log_event
from restock.core.records import (
    ItemRecord,
    clean_category,
    clean_name,
    name_key,
    new_id,
    to_int,
    to_price,
)
from restock.core.settings import S
from restock.core.tables import T
from restock.services import store


def _find_existing(name: str, category: str) -> Optional[Dict[str, Any]]:
    rows = store.query(
        T.pantry,
        S.pantry_name_index,
        Key("NameKey").eq(name_key(name)) & Key("Category").eq(category),
    )
    return rows[0] if rows else None


def add_item(payload: Dict[str, Any]) -> Tuple[ItemRecord, bool]:
    """Insert a pantry item, or overwrite quantity/price of the (name, category) match.

    Returns the stored record and whether it was newly created.
    """
    name = clean_name(payload.get("name"))
    if not name:
        raise ValidationError("Item name is required")
    category = clean_category(payload.get("category"))
    quantity = max(1, to_int(payload.get("quantity"), default=1))
    price = to_price(payload.get("price"))

    existing = _find_existing(name, category)
    if existing:
        current = ItemRecord.from_item(existing)
        record = ItemRecord(
            id=current.id,
            name=current.name,
            category=current.category,
            quantity=quantity,
            price=price,
        )
        created = False
    else:
        record = ItemRecord(id=new_id(), name=name, category=category, quantity=quantity, price=price)
        created = True

    store.put(T.pantry, record.to_item())
    log_event(
        "pantry_item_saved",
        item_id=record.id,
        name=record.name,
        category=record.category,
        quantity=record.quantity,
        created=created,
    )
    return record, created


def get_item(item_id: str) -> ItemRecord:
    row = store.get(T.pantry, item_id)
    if not row:
        raise NotFoundError(f"Item with Id '{item_id}' not found")
    return ItemRecord.from_item(row)


def consume_item(item_id: Optional[str]) -> ItemRecord:
    """Decrement quantity by one, floored at zero.

    The write lands on the change feed; the grocery list follows asynchronously.
    """
    item_id = (item_id or "").strip()
    if not item_id:
        raise ValidationError("itemId is required")
    current = get_item(item_id)
    updated = current.with_quantity(current.quantity - 1)
    store.put(T.pantry, updated.to_item())
    log_event(
        "pantry_item_consumed",
        item_id=updated.id,
        name=updated.name,
        old_quantity=current.quantity,
        new_quantity=updated.quantity,
    )
    return updated


def list_items() -> List[Dict[str, Any]]:
    rows = store.scan_all(T.pantry, S.scan_page_limit)
    return [ItemRecord.from_item(row).to_json() for row in rows]


def list_page(limit: int, cursor: Optional[str] = None) -> Dict[str, Any]:
    rows, next_cursor = store.scan_page(T.pantry, limit, cursor)
    return {
        "items": [ItemRecord.from_item(row).to_json() for row in rows],
        "next_cursor": next_cursor,
    }
