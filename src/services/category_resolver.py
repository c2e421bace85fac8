"""Category resolution and custom category management."""

import logging

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.database import atomic
from src.models.enums import CategoryKind
from src.models.pantry import PantryItem
from src.models.pantry_category import PantryCategory, normalize_name
from src.models.user import User
from src.services.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRefError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def parse_category_ref(category_ref: int | str | None) -> int:
    """Parse an opaque category reference into a category id."""
    if isinstance(category_ref, bool) or category_ref is None:
        raise InvalidRefError("Invalid category ID format")
    if isinstance(category_ref, int):
        category_id = category_ref
    elif isinstance(category_ref, str) and category_ref.strip().isdigit():
        category_id = int(category_ref.strip())
    else:
        raise InvalidRefError("Invalid category ID format")
    if category_id <= 0:
        raise InvalidRefError("Invalid category ID format")
    return category_id


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Category name is required")
    return cleaned


class CategoryResolver:
    """Resolves category references and manages a group's custom categories."""

    def __init__(self, db: Session):
        self.db = db

    def _visible_to(self, group_id: int):
        """Filter: active predefined categories, or the group's active custom ones."""
        return and_(
            PantryCategory.is_active.is_(True),
            or_(
                PantryCategory.kind == CategoryKind.PREDEFINED.value,
                and_(
                    PantryCategory.kind == CategoryKind.CUSTOM.value,
                    PantryCategory.group_id == group_id,
                ),
            ),
        )

    def resolve(self, category_ref: int | str | None, group_id: int) -> PantryCategory:
        """Resolve a category reference for an item mutation in the given group."""
        category_id = parse_category_ref(category_ref)
        category = (
            self.db.query(PantryCategory)
            .filter(PantryCategory.id == category_id, self._visible_to(group_id))
            .first()
        )
        if category is None:
            raise NotFoundError("Category not found or not accessible to this group")
        return category

    def list_visible(self, group_id: int) -> list[PantryCategory]:
        """All categories the group may use."""
        return (
            self.db.query(PantryCategory)
            .filter(self._visible_to(group_id))
            .order_by(PantryCategory.normalized_name)
            .all()
        )

    def _raise_on_conflict(self, name: str, group_id: int, exclude_id: int | None = None) -> None:
        query = self.db.query(PantryCategory).filter(
            PantryCategory.normalized_name == normalize_name(name),
            self._visible_to(group_id),
        )
        if exclude_id is not None:
            query = query.filter(PantryCategory.id != exclude_id)
        existing = query.first()
        if existing is not None:
            raise ConflictError(f"A {existing.kind} category with this name already exists")

    def _get_modifiable(self, category_id: int, actor: User, verb: str) -> PantryCategory:
        category = self.db.get(PantryCategory, category_id)
        if category is None:
            raise NotFoundError("Category not found")
        if not category.can_be_modified_by(actor.group_id):
            if category.is_predefined:
                raise ForbiddenError(f"Predefined categories cannot be {verb}")
            raise ForbiddenError("You can only modify custom categories from your group")
        return category

    def create(self, name: str, group_id: int, actor: User) -> PantryCategory:
        """Create a custom category owned by the group."""
        name = _clean_name(name)
        if not actor.is_member_of(group_id):
            raise ForbiddenError("User is not a member of this group")

        with atomic(self.db):
            self._raise_on_conflict(name, group_id)
            category = PantryCategory.custom(name, group_id, actor.id)
            self.db.add(category)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(
                    "Category with this name already exists for your group"
                ) from e

        logger.info(f"Created custom category {category.id} ({name!r}) for group {group_id}")
        return category

    def rename(self, category_id: int, new_name: str, actor: User) -> PantryCategory:
        """Rename a custom category of the actor's group."""
        new_name = _clean_name(new_name)

        with atomic(self.db):
            category = self._get_modifiable(category_id, actor, "edited")
            self._raise_on_conflict(new_name, category.group_id, exclude_id=category.id)
            category.rename(new_name)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(
                    "Category with this name already exists for your group"
                ) from e

        logger.info(f"Renamed category {category_id} to {new_name!r}")
        return category

    def delete(self, category_id: int, actor: User) -> None:
        """Delete a custom category that no item references."""
        with atomic(self.db):
            category = self._get_modifiable(category_id, actor, "deleted")
            in_use = (
                self.db.query(PantryItem.id).filter(PantryItem.category_id == category.id).count()
            )
            if in_use:
                raise ConflictError("Cannot delete category: it is being used by pantry items")
            self.db.delete(category)
            try:
                self.db.flush()
            except IntegrityError as e:
                raise ConflictError(
                    "Cannot delete category: it is being used by pantry items"
                ) from e

        logger.info(f"Deleted category {category_id}")
