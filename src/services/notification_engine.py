"""Notification engine deriving pantry notifications from item state.

Notifications are derived state. `sync` reconciles the stored notifications
of one item with what its current quantity and expiration imply:

    quantity == 0             -> out_of_stock (low_stock retracted first)
    0 < quantity <= threshold -> low_stock
    quantity > threshold      -> no stock notification
    expiration <= now+window  -> expiring_soon

`sync` never commits; it runs inside the unit of the mutation that changed the
item, so a failing notification write rolls back the quantity change too.
"""

import logging
from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import atomic
from src.models.enums import NotificationType
from src.models.pantry import PantryItem
from src.models.pantry_notification import PantryNotification
from src.models.user import User
from src.services.errors import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)

STOCK_TYPES = (NotificationType.LOW_STOCK, NotificationType.OUT_OF_STOCK)


class NotificationEngine:
    """Creates, retracts and serves pantry notifications."""

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def stock_state(self, quantity: float) -> NotificationType | None:
        """Stock notification implied by a quantity, if any."""
        if quantity <= 0:
            return NotificationType.OUT_OF_STOCK
        if quantity <= self.settings.low_stock_threshold:
            return NotificationType.LOW_STOCK
        return None

    def message_for(self, notification_type: NotificationType) -> str:
        if notification_type == NotificationType.LOW_STOCK:
            return "Item is running low"
        if notification_type == NotificationType.OUT_OF_STOCK:
            return "Item is out of stock"
        return f"Item will expire in {self.settings.expiring_soon_days} days or less"

    def sync(self, item: PantryItem, now: datetime | None = None) -> list[NotificationType]:
        """Reconcile the item's notifications with its state.

        Returns the notification types created by this call.
        """
        now = now or datetime.now(UTC)
        existing: dict[str, list[PantryNotification]] = defaultdict(list)
        for notification in (
            self.db.query(PantryNotification)
            .filter(PantryNotification.item_id == item.id)
            .order_by(PantryNotification.id)
            .all()
        ):
            existing[notification.type].append(notification)

        created = []
        wanted_stock = self.stock_state(item.quantity)

        # Retract stale stock notifications before creating the new one
        for stock_type in STOCK_TYPES:
            if stock_type != wanted_stock:
                self._retract(existing[stock_type.value])
        if wanted_stock is not None and self._ensure(item, wanted_stock, existing):
            created.append(wanted_stock)

        if item.expires_within(self.settings.expiring_soon_days, now):
            if self._ensure(item, NotificationType.EXPIRING_SOON, existing):
                created.append(NotificationType.EXPIRING_SOON)
        else:
            self._retract(existing[NotificationType.EXPIRING_SOON.value])

        self.db.flush()
        if created:
            logger.info(
                f"Item {item.id} ({item.name}): created {', '.join(t.value for t in created)}"
            )
        return created

    def _retract(self, notifications: list[PantryNotification]) -> None:
        for notification in notifications:
            logger.debug(f"Retracting {notification.type} notification {notification.id}")
            self.db.delete(notification)
        notifications.clear()

    def _ensure(
        self,
        item: PantryItem,
        notification_type: NotificationType,
        existing: dict[str, list[PantryNotification]],
    ) -> bool:
        """Make exactly one notification of this type exist. True if one was created."""
        current = existing[notification_type.value]
        if current:
            keep, extras = current[0], current[1:]
            self._retract(extras)
            keep.item_name = item.name
            existing[notification_type.value] = [keep]
            return False

        notification = PantryNotification(
            group_id=item.group_id,
            item_id=item.id,
            item_name=item.name,
            type=notification_type.value,
            message=self.message_for(notification_type),
            is_read=False,
        )
        self.db.add(notification)
        current.append(notification)
        return True

    def list_for_group(self, group_id: int, unread_only: bool = False) -> list[PantryNotification]:
        """Notifications of a group, newest first."""
        query = self.db.query(PantryNotification).filter(PantryNotification.group_id == group_id)
        if unread_only:
            query = query.filter(PantryNotification.is_read.is_(False))
        return query.order_by(
            PantryNotification.created_at.desc(), PantryNotification.id.desc()
        ).all()

    def _get_owned(self, notification_id: int, actor: User) -> PantryNotification:
        notification = self.db.get(PantryNotification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if not actor.is_member_of(notification.group_id):
            raise ForbiddenError("Notification does not belong to user's group")
        return notification

    def mark_read(self, notification_id: int, actor: User) -> PantryNotification:
        """Mark a notification of the actor's group as read."""
        with atomic(self.db):
            notification = self._get_owned(notification_id, actor)
            notification.is_read = True
        return notification

    def dismiss(self, notification_id: int, actor: User) -> int:
        """Delete a notification of the actor's group. Returns its group id."""
        with atomic(self.db):
            notification = self._get_owned(notification_id, actor)
            group_id = notification.group_id
            self.db.delete(notification)
        return group_id

    def scan_expiring(self, now: datetime | None = None) -> int:
        """Reconcile notifications of every item carrying an expiration date.

        Expiring-soon notices otherwise only appear when an item is written;
        this picks up items that drifted into the window with time.
        Returns the number of notifications created.
        """
        now = now or datetime.now(UTC)
        created = 0
        with atomic(self.db):
            items = (
                self.db.query(PantryItem)
                .filter(PantryItem.expiration_date.isnot(None))
                .order_by(PantryItem.id)
                .all()
            )
            for item in items:
                created += len(self.sync(item, now))
        logger.info(f"Expiry scan checked {len(items)} items, created {created} notifications")
        return created
