from __future__ import annotations

from typing import Any, Dict

from boto3.dynamodb.conditions import Key

from restock.core.errors import LookupFailed, StoreError
from restock.core.log import log_event
from restock.core.records import ItemRecord, clean_category, clean_name, name_key, new_id
from restock.core.settings import S
from restock.core.tables import T
from restock.services import store


def find_by_name(name: str) -> Dict[str, Any] | None:
    """First grocery row whose NameKey matches. Query errors raise LookupFailed."""
    rows = store.query(
        T.grocery,
        S.grocery_name_index,
        Key("NameKey").eq(name_key(name)),
        error_cls=LookupFailed,
    )
    return rows[0] if rows else None


def aggregate_upsert(name: str, category: str, delta: int) -> Dict[str, Any]:
    """Add ``delta`` to the grocery row for ``name``, creating it if absent.

    The increment on an existing row is a single atomic ADD. Two concurrent
    first-time creators for the same name can still both insert.
    """
    name = clean_name(name)
    category = clean_category(category)
    existing = find_by_name(name)

    if existing:
        item_id = existing["Id"]
        stored_category = clean_name(existing.get("Category"))
        try:
            updated = store.add_quantity(
                T.grocery,
                item_id,
                delta,
                category=None if stored_category else category,
            )
        except StoreError as exc:
            if store.is_conditional_failure(exc.cause):
                log_event("grocery_row_vanished", level="warning", item_id=item_id, name=name)
            raise
        log_event(
            "grocery_item_incremented",
            item_id=item_id,
            name=name,
            delta=delta,
            quantity=updated.get("Quantity"),
        )
        return updated

    record = ItemRecord(id=new_id(), name=name, category=category, quantity=delta)
    row = record.to_item()
    store.put(T.grocery, row, ConditionExpression="attribute_not_exists(Id)")
    log_event("grocery_item_created", item_id=record.id, name=name, category=category, quantity=delta)
    return row
