from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from restock.core.cursor import decode_cursor, encode_cursor
from restock.core.errors import StoreError

STORE_ERRORS = (ClientError, BotoCoreError)


def is_conditional_failure(exc: BaseException) -> bool:
    if not isinstance(exc, ClientError):
        return False
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def get(table: Any, item_id: str) -> Optional[Dict[str, Any]]:
    try:
        resp = table.get_item(Key={"Id": item_id})
    except STORE_ERRORS as exc:
        raise StoreError("get_item", exc) from exc
    return resp.get("Item")


def put(table: Any, row: Dict[str, Any], **conditions: Any) -> None:
    try:
        table.put_item(Item=row, **conditions)
    except STORE_ERRORS as exc:
        raise StoreError("put_item", exc) from exc


def delete(table: Any, item_id: str) -> None:
    try:
        table.delete_item(Key={"Id": item_id})
    except STORE_ERRORS as exc:
        raise StoreError("delete_item", exc) from exc


def query(table: Any, index: str, key_condition: Any, *, error_cls: type = StoreError) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    last_key = None
    while True:
        kwargs: Dict[str, Any] = {
            "IndexName": index,
            "KeyConditionExpression": key_condition,
        }
        if last_key:
            kwargs["ExclusiveStartKey"] = last_key
        try:
            resp = table.query(**kwargs)
        except STORE_ERRORS as exc:
            raise error_cls("query", exc) from exc
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
    return items


def scan_page(table: Any, limit: int, cursor: Optional[str] = None) -> Tuple[List[Dict[str, Any]], Optional[str]]:
    kwargs: Dict[str, Any] = {"Limit": limit}
    start_key = decode_cursor(cursor)
    if start_key:
        kwargs["ExclusiveStartKey"] = start_key
    try:
        resp = table.scan(**kwargs)
    except STORE_ERRORS as exc:
        raise StoreError("scan", exc) from exc
    return resp.get("Items", []), encode_cursor(resp.get("LastEvaluatedKey"))


def scan_all(table: Any, page_limit: int) -> List[Dict[str, Any]]:
    items: List[Dict[str, Any]] = []
    last_key = None
    while True:
        kwargs: Dict[str, Any] = {"Limit": page_limit}
        if last_key:
            kwargs["ExclusiveStartKey"] = last_key
        try:
            resp = table.scan(**kwargs)
        except STORE_ERRORS as exc:
            raise StoreError("scan", exc) from exc
        items.extend(resp.get("Items", []))
        last_key = resp.get("LastEvaluatedKey")
        if not last_key:
            break
    return items


def add_quantity(table: Any, item_id: str, delta: int, category: Optional[str] = None) -> Dict[str, Any]:
    """Atomically add ``delta`` to an existing row's Quantity.

    Fails with StoreError if the row vanished since it was read.
    """
    update_expr = "ADD Quantity :delta"
    values: Dict[str, Any] = {":delta": delta}
    if category:
        update_expr = f"{update_expr} SET Category = :category"
        values[":category"] = category
    try:
        resp = table.update_item(
            Key={"Id": item_id},
            UpdateExpression=update_expr,
            ExpressionAttributeValues=values,
            ConditionExpression="attribute_exists(Id)",
            ReturnValues="ALL_NEW",
        )
    except STORE_ERRORS as exc:
        raise StoreError("update_item", exc) from exc
    return resp.get("Attributes", {})
