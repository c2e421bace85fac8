"""Pantry category API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.api.dependencies import (
    get_category_resolver,
    get_current_user,
    get_pantry_queries,
    resolve_group_id,
)
from src.models.user import User
from src.schemas.category import (
    CategoryCreate,
    CategoryListResponse,
    CategoryResponse,
    CategoryUpdate,
)
from src.services.category_resolver import CategoryResolver
from src.services.pantry_queries import PantryQueries
from src.services.realtime import PantryEvent, PantryEventType, publish_pantry_event

router = APIRouter(prefix="/api/v1/pantry/categories", tags=["pantry-categories"])


@router.get("", response_model=CategoryListResponse)
def get_categories(
    current_user: Annotated[User, Depends(get_current_user)],
    queries: Annotated[PantryQueries, Depends(get_pantry_queries)],
):
    """Get the predefined categories and the group's custom ones."""
    group_id = resolve_group_id(current_user)
    return queries.list_categories(group_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category_data: CategoryCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    resolver: Annotated[CategoryResolver, Depends(get_category_resolver)],
):
    """Create a custom category for the caller's group."""
    group_id = resolve_group_id(current_user)
    category = resolver.create(category_data.name, group_id, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.CATEGORY_CREATED,
            group_id,
            category_id=category.id,
            name=category.name,
        )
    )
    return category


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_data: CategoryUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    resolver: Annotated[CategoryResolver, Depends(get_category_resolver)],
):
    """Rename a custom category of the caller's group."""
    category = resolver.rename(category_id, category_data.name, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.CATEGORY_UPDATED,
            category.group_id,
            category_id=category.id,
            name=category.name,
        )
    )
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    resolver: Annotated[CategoryResolver, Depends(get_category_resolver)],
):
    """Delete a custom category that no item uses."""
    resolver.delete(category_id, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.CATEGORY_DELETED, current_user.group_id, category_id=category_id
        )
    )
