"""Pantry schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# Category references are opaque to clients; the service parses them.
CategoryRef = int | str


class PantryItemCreate(BaseModel):
    """Add (or upsert) a pantry item."""

    name: str = Field(..., max_length=255)
    quantity: float
    unit: str = Field(..., max_length=50)
    category_id: CategoryRef
    expiration_date: datetime | None = None
    group_id: int | None = None  # Defaults to the caller's group


class PantryItemUpdate(BaseModel):
    """Replace the mutable fields of a pantry item."""

    name: str = Field(..., max_length=255)
    quantity: float
    unit: str = Field(..., max_length=50)
    category_id: CategoryRef
    expiration_date: datetime | None = None


class PantryItemUse(BaseModel):
    """Consume some quantity of a pantry item."""

    quantity: float


class CategoryInfo(BaseModel):
    """Resolved category information attached to an item."""

    id: int
    name: str
    type: str


class PantryItemView(BaseModel):
    """Pantry item enriched with category and contributor metadata."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    name: str
    quantity: float
    unit: str
    category_id: int
    expiration_date: datetime | None
    added_by: int
    created_at: datetime
    updated_at: datetime
    category_info: CategoryInfo | None
    is_expiring_soon: bool
    is_expired: bool
    added_by_name: str


class UseResult(BaseModel):
    """Outcome of consuming an item."""

    success: bool = True
    message: str = "Item used successfully"
    remaining_quantity: float
    unit: str


class ShoppingListEntry(BaseModel):
    """Item inferred to need restocking."""

    item_id: int
    name: str
    quantity: float
    unit: str
    category_info: CategoryInfo | None
    reason: Literal["out_of_stock", "low_stock", "expired"]
