"""Pantry API endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    get_current_user,
    get_history_ledger,
    get_notification_engine,
    get_pantry_queries,
    get_pantry_service,
    resolve_group_id,
)
from src.config import get_settings
from src.models.user import User
from src.schemas.history import HistoryEntryResponse
from src.schemas.notification import NotificationResponse
from src.schemas.pantry import (
    PantryItemCreate,
    PantryItemUpdate,
    PantryItemUse,
    PantryItemView,
    ShoppingListEntry,
    UseResult,
)
from src.services.errors import ForbiddenError
from src.services.history_ledger import HistoryLedger
from src.services.notification_engine import NotificationEngine
from src.services.pantry_queries import PantryQueries
from src.services.pantry_service import PantryService
from src.services.realtime import PantryEvent, PantryEventType, publish_pantry_event

router = APIRouter(prefix="/api/v1/pantry", tags=["pantry"])


def _item_event(event_type: PantryEventType, view: PantryItemView) -> PantryEvent:
    return PantryEvent.build(
        event_type,
        view.group_id,
        item_id=view.id,
        name=view.name,
        quantity=view.quantity,
        unit=view.unit,
    )


@router.get("/items", response_model=list[PantryItemView])
def list_pantry_items(
    current_user: Annotated[User, Depends(get_current_user)],
    queries: Annotated[PantryQueries, Depends(get_pantry_queries)],
    category_id: str | None = Query(default=None, description="Only items of this category"),
    group_id: int | None = Query(default=None),
):
    """List the group's pantry items with resolved category information."""
    group_id = resolve_group_id(current_user, group_id)
    return queries.list_items(group_id, category_id)


@router.post("/items", response_model=PantryItemView)
def add_pantry_item(
    item_data: PantryItemCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[PantryService, Depends(get_pantry_service)],
):
    """Add an item, or replace the stock of the item with the same name and category."""
    group_id = item_data.group_id or current_user.group_id
    if group_id is None:
        raise ForbiddenError("User is not a member of any group")

    view = service.add(
        group_id,
        item_data.name,
        item_data.quantity,
        item_data.unit,
        item_data.category_id,
        item_data.expiration_date,
        current_user,
    )
    publish_pantry_event(_item_event(PantryEventType.ITEM_ADDED, view))
    return view


@router.put("/items/{item_id}", response_model=PantryItemView)
def update_pantry_item(
    item_id: int,
    item_data: PantryItemUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[PantryService, Depends(get_pantry_service)],
):
    """Replace the fields of a pantry item."""
    view = service.update(
        item_id,
        item_data.name,
        item_data.quantity,
        item_data.unit,
        item_data.category_id,
        item_data.expiration_date,
        current_user,
    )
    publish_pantry_event(_item_event(PantryEventType.ITEM_UPDATED, view))
    return view


@router.post("/items/{item_id}/use", response_model=UseResult)
def use_pantry_item(
    item_id: int,
    use_data: PantryItemUse,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[PantryService, Depends(get_pantry_service)],
):
    """Consume some of an item's stock."""
    result = service.use(item_id, use_data.quantity, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.ITEM_USED,
            current_user.group_id,
            item_id=item_id,
            remaining_quantity=result.remaining_quantity,
            unit=result.unit,
        )
    )
    return result


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pantry_item(
    item_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    service: Annotated[PantryService, Depends(get_pantry_service)],
):
    """Remove an item and its notifications from the pantry."""
    group_id = service.delete(item_id, current_user)
    publish_pantry_event(
        PantryEvent.build(PantryEventType.ITEM_DELETED, group_id, item_id=item_id)
    )


@router.get("/history", response_model=list[HistoryEntryResponse])
def get_pantry_history(
    current_user: Annotated[User, Depends(get_current_user)],
    ledger: Annotated[HistoryLedger, Depends(get_history_ledger)],
    item_id: int | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=1000),
):
    """Audit trail of the group's pantry, newest first."""
    group_id = resolve_group_id(current_user)
    return ledger.list_for_group(
        group_id, item_id=item_id, limit=limit or get_settings().history_default_limit
    )


@router.get("/warnings", response_model=list[NotificationResponse])
def get_pantry_warnings(
    current_user: Annotated[User, Depends(get_current_user)],
    engine: Annotated[NotificationEngine, Depends(get_notification_engine)],
    unread_only: bool = Query(default=False),
):
    """Low-stock, out-of-stock and expiring notifications of the group."""
    group_id = resolve_group_id(current_user)
    return engine.list_for_group(group_id, unread_only=unread_only)


@router.post("/notifications/{notification_id}/read", response_model=NotificationResponse)
def mark_notification_read(
    notification_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    engine: Annotated[NotificationEngine, Depends(get_notification_engine)],
):
    """Mark a pantry notification as read."""
    notification = engine.mark_read(notification_id, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.NOTIFICATION_READ,
            notification.group_id,
            notification_id=notification_id,
        )
    )
    return notification


@router.delete("/notifications/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
def dismiss_notification(
    notification_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    engine: Annotated[NotificationEngine, Depends(get_notification_engine)],
):
    """Dismiss a pantry notification."""
    group_id = engine.dismiss(notification_id, current_user)
    publish_pantry_event(
        PantryEvent.build(
            PantryEventType.NOTIFICATION_DISMISSED, group_id, notification_id=notification_id
        )
    )


@router.get("/expiring", response_model=list[PantryItemView])
def get_expiring_items(
    current_user: Annotated[User, Depends(get_current_user)],
    queries: Annotated[PantryQueries, Depends(get_pantry_queries)],
    days: int | None = Query(default=None, ge=0, le=365),
):
    """Items expiring within the window (default from settings), soonest first."""
    group_id = resolve_group_id(current_user)
    return queries.list_expiring(group_id, days)


@router.get("/shopping-list", response_model=list[ShoppingListEntry])
def get_shopping_list(
    current_user: Annotated[User, Depends(get_current_user)],
    queries: Annotated[PantryQueries, Depends(get_pantry_queries)],
):
    """Items that need restocking."""
    group_id = resolve_group_id(current_user)
    return queries.shopping_list(group_id)
