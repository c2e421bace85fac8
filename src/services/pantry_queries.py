"""Read-side projections of the pantry: item views, categories, shopping list."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.models.mixins import ensure_utc
from src.models.pantry import PantryItem
from src.models.pantry_category import PantryCategory
from src.models.user import User
from src.schemas.pantry import CategoryInfo, PantryItemView, ShoppingListEntry
from src.services.category_resolver import CategoryResolver, parse_category_ref

logger = logging.getLogger(__name__)


class LookupArena:
    """Memoized category and contributor lookups for a single query call.

    An arena must not outlive the call that created it: categories get renamed
    and users change their names between requests.
    """

    def __init__(self, db: Session):
        self.db = db
        self._categories: dict[int, PantryCategory | None] = {}
        self._user_names: dict[int, str] = {}

    def category(self, category_id: int) -> PantryCategory | None:
        if category_id not in self._categories:
            self._categories[category_id] = self.db.get(PantryCategory, category_id)
        return self._categories[category_id]

    def user_name(self, user_id: int) -> str:
        if user_id not in self._user_names:
            user = self.db.get(User, user_id)
            self._user_names[user_id] = user.display_name if user else ""
        return self._user_names[user_id]


def category_info(category: PantryCategory | None) -> CategoryInfo | None:
    if category is None:
        return None
    return CategoryInfo(id=category.id, name=category.name, type=category.kind)


def to_item_view(
    item: PantryItem,
    category: PantryCategory | None,
    added_by_name: str,
    expiring_soon_days: int,
    now: datetime | None = None,
) -> PantryItemView:
    """Project an item row into the enriched view returned to clients."""
    now = now or datetime.now(UTC)
    return PantryItemView(
        id=item.id,
        group_id=item.group_id,
        name=item.name,
        quantity=item.quantity,
        unit=item.unit,
        category_id=item.category_id,
        expiration_date=ensure_utc(item.expiration_date) if item.expiration_date else None,
        added_by=item.added_by,
        created_at=item.created_at,
        updated_at=item.updated_at,
        category_info=category_info(category),
        is_expiring_soon=item.is_expiring_soon(expiring_soon_days, now),
        is_expired=item.is_expired(now),
        added_by_name=added_by_name,
    )


def _sort_key(view: PantryItemView | ShoppingListEntry) -> tuple[str, str, int]:
    category_name = view.category_info.name.lower() if view.category_info else ""
    item_id = view.id if isinstance(view, PantryItemView) else view.item_id
    return (category_name, view.name.lower(), item_id)


class PantryQueries:
    """Listing and reporting over a group's pantry. Not transactional."""

    def __init__(self, db: Session, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()

    def _views(self, items: list[PantryItem], now: datetime) -> list[PantryItemView]:
        arena = LookupArena(self.db)
        return [
            to_item_view(
                item,
                arena.category(item.category_id),
                arena.user_name(item.added_by),
                self.settings.expiring_soon_days,
                now,
            )
            for item in items
        ]

    def list_items(
        self, group_id: int, category_id: int | str | None = None
    ) -> list[PantryItemView]:
        """Items of a group sorted by category name, then item name."""
        query = self.db.query(PantryItem).filter(PantryItem.group_id == group_id)
        if category_id is not None and category_id != "":
            query = query.filter(PantryItem.category_id == parse_category_ref(category_id))
        views = self._views(query.all(), datetime.now(UTC))
        return sorted(views, key=_sort_key)

    def list_categories(self, group_id: int) -> dict[str, list[PantryCategory]]:
        """Categories visible to a group, split into predefined and custom."""
        categories = CategoryResolver(self.db).list_visible(group_id)
        categories.sort(key=lambda c: (c.name.lower(), c.id))
        return {
            "predefined": [c for c in categories if c.is_predefined],
            "custom": [c for c in categories if c.is_custom],
        }

    def list_expiring(self, group_id: int, days: int | None = None) -> list[PantryItemView]:
        """Items expiring within `days` (already expired ones included), soonest first."""
        days = self.settings.expiring_soon_days if days is None else days
        now = datetime.now(UTC)
        items = (
            self.db.query(PantryItem)
            .filter(
                PantryItem.group_id == group_id,
                PantryItem.expiration_date.isnot(None),
                PantryItem.expiration_date <= now + timedelta(days=days),
            )
            .order_by(PantryItem.expiration_date, PantryItem.id)
            .all()
        )
        return self._views(items, now)

    def shopping_list(self, group_id: int) -> list[ShoppingListEntry]:
        """Items that need restocking: out of stock, expired, or running low."""
        now = datetime.now(UTC)
        threshold = self.settings.low_stock_threshold
        arena = LookupArena(self.db)
        entries = []
        for item in self.db.query(PantryItem).filter(PantryItem.group_id == group_id).all():
            if item.quantity <= 0:
                reason = "out_of_stock"
            elif item.is_expired(now):
                reason = "expired"
            elif item.quantity <= threshold:
                reason = "low_stock"
            else:
                continue
            entries.append(
                ShoppingListEntry(
                    item_id=item.id,
                    name=item.name,
                    quantity=item.quantity,
                    unit=item.unit,
                    category_info=category_info(arena.category(item.category_id)),
                    reason=reason,
                )
            )
        return sorted(entries, key=_sort_key)
