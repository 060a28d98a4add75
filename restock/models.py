from __future__ import annotations

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AddItemReq(BaseModel):
    # The UI sends PascalCase keys; lower/camel case is accepted too.
    model_config = ConfigDict(populate_by_name=True)
    name: Optional[str] = Field(default=None, validation_alias=AliasChoices("Name", "name"))
    category: Optional[str] = Field(default=None, validation_alias=AliasChoices("Category", "category"))
    quantity: Optional[int] = Field(default=None, validation_alias=AliasChoices("Quantity", "quantity"))
    price: Optional[float] = Field(default=None, validation_alias=AliasChoices("Price", "price"))


class ConsumeItemReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    item_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("itemId", "ItemId", "item_id", "id"))
    # Informational only; the stored row is authoritative.
    item_name: Optional[str] = Field(default=None, validation_alias=AliasChoices("itemName", "ItemName", "item_name"))


class UpdateStockReq(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    quantity: Optional[int] = Field(default=None, validation_alias=AliasChoices("Quantity", "quantity"))


class ItemOut(BaseModel):
    Id: str
    Name: str
    Category: str
    Quantity: int
    Price: float
    finished: bool = False


class ItemPageOut(BaseModel):
    items: List[ItemOut]
    next_cursor: Optional[str] = None
