"""Pantry service: the transactional core of the quantity ledger.

Every mutation runs as one atomic unit covering category resolution, the item
write and the notification reconciliation. History is appended after the unit
has committed and never undoes it.
"""

import logging
import math
from datetime import UTC, datetime

from sqlalchemy import Numeric, cast, func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import atomic
from src.models.enums import HistoryAction
from src.models.group import Group
from src.models.mixins import ensure_utc
from src.models.pantry import PantryItem
from src.models.pantry_category import PantryCategory, normalize_name
from src.models.pantry_notification import PantryNotification
from src.models.user import User
from src.schemas.pantry import PantryItemView, UseResult
from src.services.category_resolver import CategoryResolver
from src.services.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientQuantityError,
    NotFoundError,
    ValidationError,
)
from src.services.history_ledger import HistoryLedger
from src.services.notification_engine import NotificationEngine
from src.services.pantry_queries import LookupArena, to_item_view

logger = logging.getLogger(__name__)

# Decimal places kept on stored stock after a decrement.
QUANTITY_SCALE = 9


class _ConcurrentInsert(Exception):
    """Another transaction inserted the same (group, name, category) first."""


def _clean_item_fields(name: str | None, quantity: float | None, unit: str | None):
    """Validate and normalize the mutable item fields."""
    name = (name or "").strip()
    unit = (unit or "").strip()
    if not name:
        raise ValidationError("Item name is required")
    if not unit:
        raise ValidationError("Unit is required")
    if quantity is None or not math.isfinite(quantity) or quantity < 0:
        raise ValidationError("Quantity must be a non-negative number")
    return name, float(quantity), unit


class PantryService:
    """Add, update, use and delete pantry items for a group."""

    def __init__(
        self,
        db: Session,
        categories: CategoryResolver | None = None,
        notifications: NotificationEngine | None = None,
        history: HistoryLedger | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.categories = categories or CategoryResolver(db)
        self.notifications = notifications or NotificationEngine(db, self.settings)
        self.history = history or HistoryLedger(db)

    def require_member(self, actor: User, group_id: int) -> Group:
        """Check that the group exists and the actor belongs to it."""
        group = self.db.get(Group, group_id)
        if group is None:
            raise NotFoundError("Group not found")
        if not actor.is_member_of(group.id):
            raise ForbiddenError("User is not a member of this group")
        return group

    def _load_item(self, item_id: int, actor: User) -> PantryItem:
        """Load and row-lock an item of the actor's group."""
        item = (
            self.db.query(PantryItem)
            .filter(PantryItem.id == item_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if item is None:
            raise NotFoundError("Pantry item not found")
        if not actor.is_member_of(item.group_id):
            raise ForbiddenError("Pantry item does not belong to user's group")
        return item

    def _flush_item(self) -> None:
        try:
            self.db.flush()
        except IntegrityError as e:
            raise ConflictError("An item with this name already exists in this category") from e

    def _view(self, item: PantryItem, category: PantryCategory, now: datetime) -> PantryItemView:
        arena = LookupArena(self.db)
        return to_item_view(
            item, category, arena.user_name(item.added_by), self.settings.expiring_soon_days, now
        )

    def add(
        self,
        group_id: int,
        name: str,
        quantity: float,
        unit: str,
        category_ref: int | str,
        expiration: datetime | None,
        actor: User,
    ) -> PantryItemView:
        """Add an item, or replace the stock of the matching (name, category) item."""
        name, quantity, unit = _clean_item_fields(name, quantity, unit)
        expiration = ensure_utc(expiration) if expiration else None
        now = datetime.now(UTC)

        try:
            view, old_quantity = self._upsert(
                group_id, name, quantity, unit, category_ref, expiration, actor, now
            )
        except _ConcurrentInsert:
            # The second pass finds the committed row and updates it
            logger.info(f"Item {name!r} was inserted concurrently in group {group_id}, retrying")
            try:
                view, old_quantity = self._upsert(
                    group_id, name, quantity, unit, category_ref, expiration, actor, now
                )
            except _ConcurrentInsert as e:
                raise ConflictError(
                    "An item with this name already exists in this category"
                ) from e

        if old_quantity is None:
            logger.info(f"Added item {view.id} ({view.name}) to group {group_id}")
            self._record(view, HistoryAction.ADD, quantity, actor)
        elif old_quantity != quantity:
            logger.info(f"Restocked item {view.id} from {old_quantity:g} to {quantity:g}")
            self._record(view, HistoryAction.ADD, quantity - old_quantity, actor)
        return view

    def _find_item(
        self, group_id: int, normalized_name: str, category_id: int
    ) -> PantryItem | None:
        """Row-lock the item matching the upsert identity, if there is one."""
        return (
            self.db.query(PantryItem)
            .filter(
                PantryItem.group_id == group_id,
                PantryItem.normalized_name == normalized_name,
                PantryItem.category_id == category_id,
            )
            .with_for_update()
            .populate_existing()
            .first()
        )

    def _upsert(
        self,
        group_id: int,
        name: str,
        quantity: float,
        unit: str,
        category_ref: int | str,
        expiration: datetime | None,
        actor: User,
        now: datetime,
    ) -> tuple[PantryItemView, float | None]:
        """One atomic add attempt. Returns the view and the replaced quantity."""
        old_quantity: float | None = None

        with atomic(self.db):
            self.require_member(actor, group_id)
            category = self.categories.resolve(category_ref, group_id)

            item = self._find_item(group_id, normalize_name(name), category.id)
            if item is not None:
                old_quantity = item.quantity
                item.quantity = quantity
                item.unit = unit
                if expiration is not None:
                    item.expiration_date = expiration
            else:
                item = PantryItem(
                    group_id=group_id,
                    name=name,
                    normalized_name=normalize_name(name),
                    quantity=quantity,
                    unit=unit,
                    category_id=category.id,
                    expiration_date=expiration,
                    added_by=actor.id,
                )
                self.db.add(item)
                try:
                    self.db.flush()
                except IntegrityError as e:
                    raise _ConcurrentInsert() from e
            self._flush_item()

            self.notifications.sync(item, now)
            view = self._view(item, category, now)

        return view, old_quantity

    def update(
        self,
        item_id: int,
        name: str,
        quantity: float,
        unit: str,
        category_ref: int | str,
        expiration: datetime | None,
        actor: User,
    ) -> PantryItemView:
        """Replace every mutable field of an item."""
        name, quantity, unit = _clean_item_fields(name, quantity, unit)
        expiration = ensure_utc(expiration) if expiration else None
        now = datetime.now(UTC)

        with atomic(self.db):
            item = self._load_item(item_id, actor)
            category = self.categories.resolve(category_ref, item.group_id)
            old_quantity = item.quantity

            item.name = name
            item.normalized_name = normalize_name(name)
            item.quantity = quantity
            item.unit = unit
            item.category_id = category.id
            if expiration is not None:
                item.expiration_date = expiration
            self._flush_item()

            self.notifications.sync(item, now)
            view = self._view(item, category, now)

        if old_quantity != quantity:
            self._record(view, HistoryAction.ADD, quantity - old_quantity, actor)
        return view

    def use(self, item_id: int, quantity: float, actor: User) -> UseResult:
        """Consume part of an item's stock. Never partial, never below zero."""
        if quantity is None or not math.isfinite(quantity) or quantity <= 0:
            raise ValidationError("Quantity must be positive")
        now = datetime.now(UTC)

        with atomic(self.db):
            item = self._load_item(item_id, actor)

            # Compare-and-write: the stock check and the decrement are one statement
            remaining = func.round(cast(PantryItem.quantity - quantity, Numeric), QUANTITY_SCALE)
            result = self.db.execute(
                update(PantryItem)
                .where(PantryItem.id == item.id, PantryItem.quantity >= quantity)
                .values(quantity=remaining, updated_at=func.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise InsufficientQuantityError(
                    f"Not enough quantity available ({item.quantity:g} {item.unit} left)",
                    available=item.quantity,
                )

            self.db.refresh(item)
            self.notifications.sync(item, now)
            outcome = UseResult(remaining_quantity=item.quantity, unit=item.unit)
            snapshot = (item.group_id, item.id, item.name)

        group_id, item_id, item_name = snapshot
        self.history.record(
            group_id=group_id,
            item_id=item_id,
            item_name=item_name,
            action=HistoryAction.USE,
            quantity=-quantity,
            actor=actor,
        )
        return outcome

    def delete(self, item_id: int, actor: User) -> int:
        """Delete an item with its notifications. Returns the item's group id."""
        with atomic(self.db):
            item = self._load_item(item_id, actor)
            group_id, name, quantity = item.group_id, item.name, item.quantity

            for notification in (
                self.db.query(PantryNotification)
                .filter(PantryNotification.item_id == item.id)
                .all()
            ):
                self.db.delete(notification)
            self.db.delete(item)

        logger.info(f"Deleted item {item_id} ({name}) from group {group_id}")
        self.history.record(
            group_id=group_id,
            item_id=item_id,
            item_name=name,
            action=HistoryAction.REMOVE,
            quantity=quantity,
            actor=actor,
        )
        return group_id

    def _record(
        self, view: PantryItemView, action: HistoryAction, quantity: float, actor: User
    ) -> None:
        self.history.record(
            group_id=view.group_id,
            item_id=view.id,
            item_name=view.name,
            action=action,
            quantity=quantity,
            actor=actor,
        )
