from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse

from restock.models import AddItemReq, ConsumeItemReq, ItemOut, ItemPageOut
from restock.services.pantry import add_item, consume_item, list_items, list_page

router = APIRouter(tags=["pantry"])


@router.post("/items", response_class=PlainTextResponse)
async def api_add_item(body: AddItemReq):
    record, created = add_item(body.model_dump())
    verb = "added" if created else "updated"
    return PlainTextResponse(f"Item '{record.name}' {verb} successfully")


@router.get("/items", response_model=list[ItemOut])
@router.get("/pantry-items", response_model=list[ItemOut])
async def api_list_items():
    return list_items()


@router.get("/pantry-items/page", response_model=ItemPageOut)
async def api_list_items_page(
    limit: int = Query(default=100, ge=1, le=1000),
    cursor: Optional[str] = Query(default=None),
):
    return list_page(limit, cursor)


@router.post("/consume-item", response_class=PlainTextResponse)
async def api_consume_item(body: ConsumeItemReq):
    record = consume_item(body.item_id)
    return PlainTextResponse(f"Item '{record.name}' consumed. Remaining quantity: {record.quantity}")
