"""Pantry category schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreate(BaseModel):
    """Create a custom category."""

    name: str = Field(..., max_length=100)


class CategoryUpdate(BaseModel):
    """Rename a custom category."""

    name: str = Field(..., max_length=100)


class CategoryResponse(BaseModel):
    """Category response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: str
    group_id: int | None
    created_by: int | None
    is_active: bool
    created_at: datetime


class CategoryListResponse(BaseModel):
    """Categories visible to a group, partitioned by kind."""

    predefined: list[CategoryResponse]
    custom: list[CategoryResponse]
