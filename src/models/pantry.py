"""Pantry item model for tracking consumable stock of a group."""

from datetime import UTC, datetime, timedelta

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin, ensure_utc


class PantryItem(Base, TimestampMixin):
    """Pantry item with a quantity ledger, owned by a group."""

    __tablename__ = "pantry_items"
    __table_args__ = (
        UniqueConstraint(
            "group_id", "normalized_name", "category_id", name="uq_pantry_group_name_category"
        ),
        CheckConstraint("quantity >= 0", name="ck_pantry_items_quantity_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)  # Display name
    normalized_name = Column(String(255), nullable=False)  # Lowercase, trimmed for matching
    quantity = Column(Float, nullable=False, default=0.0)
    unit = Column(String(50), nullable=False)
    category_id = Column(Integer, ForeignKey("pantry_categories.id"), nullable=False, index=True)
    expiration_date = Column(DateTime(timezone=True), nullable=True, index=True)
    added_by = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Relationships
    notifications = relationship(
        "PantryNotification",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def expires_within(self, days: int, now: datetime | None = None) -> bool:
        """Check if the expiration date falls before now + days (expired items included)."""
        if self.expiration_date is None:
            return False
        now = now or datetime.now(UTC)
        return ensure_utc(self.expiration_date) <= now + timedelta(days=days)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the expiration date is in the past."""
        if self.expiration_date is None:
            return False
        now = now or datetime.now(UTC)
        return ensure_utc(self.expiration_date) < now

    def is_expiring_soon(self, days: int, now: datetime | None = None) -> bool:
        """Check if the item is not yet expired but will be within the window."""
        now = now or datetime.now(UTC)
        return self.expires_within(days, now) and not self.is_expired(now)
