from __future__ import annotations

from typing import Any, Dict, List, Optional

from restock.core.errors import NotFoundError, ValidationError
from restock.core.log import log_event
from restock.core.records import ItemRecord, to_int
from restock.core.settings import S
from restock.core.tables import T
from restock.metrics import record_cache_lookup
from restock.services import store


def list_items(cache) -> List[Dict[str, Any]]:
    cached = cache.get()
    if cached is not None:
        record_cache_lookup(True)
        log_event("grocery_list_cache_hit", count=len(cached), age_seconds=cache.age())
        return cached
    record_cache_lookup(False)
    rows = store.scan_all(T.grocery, S.scan_page_limit)
    items = [ItemRecord.from_item(row).to_json() for row in rows]
    cache.set(items)
    log_event("grocery_list_scanned", count=len(items))
    return items


def list_page(limit: int, cursor: Optional[str] = None) -> Dict[str, Any]:
    rows, next_cursor = store.scan_page(T.grocery, limit, cursor)
    return {
        "items": [ItemRecord.from_item(row).to_json() for row in rows],
        "next_cursor": next_cursor,
    }


def delete_item(item_id: Optional[str]) -> str:
    item_id = (item_id or "").strip()
    if not item_id:
        raise ValidationError("Item ID is required")
    store.delete(T.grocery, item_id)
    log_event("grocery_item_deleted", item_id=item_id)
    return item_id


def update_stock(item_id: Optional[str], quantity: Any) -> ItemRecord:
    item_id = (item_id or "").strip()
    if not item_id:
        raise ValidationError("Item ID is required")
    if quantity is None:
        raise ValidationError("Quantity is required")
    row = store.get(T.grocery, item_id)
    if not row:
        raise NotFoundError(f"Item with Id '{item_id}' not found")
    updated = ItemRecord.from_item(row).with_quantity(to_int(quantity))
    # Attributes outside ItemRecord survive the overwrite.
    store.put(T.grocery, {**row, **updated.to_item()})
    log_event("grocery_stock_updated", item_id=item_id, quantity=updated.quantity)
    return updated
