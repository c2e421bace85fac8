"""Pydantic schemas for API requests and responses."""

from src.schemas.category import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)
from src.schemas.history import HistoryEntryResponse
from src.schemas.notification import NotificationResponse
from src.schemas.pantry import (
    CategoryInfo,
    PantryItemCreate,
    PantryItemUpdate,
    PantryItemUse,
    PantryItemView,
    ShoppingListEntry,
    UseResult,
)

__all__ = [
    "CategoryCreate",
    "CategoryUpdate",
    "CategoryResponse",
    "CategoryListResponse",
    "CategoryInfo",
    "PantryItemCreate",
    "PantryItemUpdate",
    "PantryItemUse",
    "PantryItemView",
    "UseResult",
    "ShoppingListEntry",
    "NotificationResponse",
    "HistoryEntryResponse",
]
