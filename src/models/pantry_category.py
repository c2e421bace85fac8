"""Pantry category model."""

from datetime import UTC, datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)

from src.database import Base
from src.models.enums import CategoryKind


def normalize_name(name: str) -> str:
    """Lowercase, trimmed form used for case-insensitive comparisons."""
    return name.strip().lower()


class PantryCategory(Base):
    """Category for organizing pantry items.

    Predefined categories have no group and are visible to every group.
    Custom categories belong to exactly one group.
    """

    __tablename__ = "pantry_categories"
    __table_args__ = (
        UniqueConstraint("group_id", "normalized_name", name="uq_pantry_category_group_name"),
        # NULL group_ids never collide in the constraint above
        Index(
            "uq_pantry_category_predefined_name",
            "normalized_name",
            unique=True,
            postgresql_where=text("group_id IS NULL"),
            sqlite_where=text("group_id IS NULL"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    normalized_name = Column(String(100), nullable=False, index=True)
    kind = Column(String(20), nullable=False, default=CategoryKind.CUSTOM.value)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )

    @classmethod
    def predefined(cls, name: str) -> "PantryCategory":
        """Build a system-wide predefined category."""
        name = name.strip()
        return cls(
            name=name,
            normalized_name=normalize_name(name),
            kind=CategoryKind.PREDEFINED.value,
            group_id=None,
            created_by=None,
            is_active=True,
        )

    @classmethod
    def custom(cls, name: str, group_id: int, created_by: int) -> "PantryCategory":
        """Build a custom category owned by a group."""
        name = name.strip()
        return cls(
            name=name,
            normalized_name=normalize_name(name),
            kind=CategoryKind.CUSTOM.value,
            group_id=group_id,
            created_by=created_by,
            is_active=True,
        )

    @property
    def is_predefined(self) -> bool:
        return self.kind == CategoryKind.PREDEFINED.value

    @property
    def is_custom(self) -> bool:
        return self.kind == CategoryKind.CUSTOM.value

    def is_visible_to(self, group_id: int) -> bool:
        """Check if the category may be referenced by items of the group."""
        if not self.is_active:
            return False
        if self.is_predefined:
            return True
        return self.group_id is not None and self.group_id == group_id

    def can_be_modified_by(self, group_id: int | None) -> bool:
        """Only members of the owning group may rename or delete a custom category."""
        if self.is_predefined:
            return False
        return group_id is not None and self.group_id == group_id

    def rename(self, name: str) -> None:
        name = name.strip()
        self.name = name
        self.normalized_name = normalize_name(name)
