from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse

from restock.models import ItemOut, ItemPageOut, UpdateStockReq
from restock.services.grocery import delete_item, list_items, list_page, update_stock

router = APIRouter(tags=["grocery"])


def get_grocery_cache(request: Request):
    return request.app.state.grocery_cache


@router.get("/grocery-list", response_model=list[ItemOut])
async def api_list_grocery(cache=Depends(get_grocery_cache)):
    return list_items(cache)


@router.get("/grocery-list/page", response_model=ItemPageOut)
async def api_list_grocery_page(
    limit: int = Query(default=100, ge=1, le=1000),
    cursor: Optional[str] = Query(default=None),
):
    return list_page(limit, cursor)


@router.delete("/grocery-list/{item_id}", response_class=PlainTextResponse)
async def api_delete_grocery_item(item_id: str):
    deleted = delete_item(item_id)
    return PlainTextResponse(f"Item with ID '{deleted}' deleted successfully")


@router.put("/items/{item_id}", response_class=PlainTextResponse)
async def api_update_stock(item_id: str, body: UpdateStockReq):
    record = update_stock(item_id, body.quantity)
    return PlainTextResponse(f"Item '{record.name}' stock updated to {record.quantity}")
