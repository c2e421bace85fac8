"""Pantry notification model (derived from item state)."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import CreatedAtMixin


class PantryNotification(Base, CreatedAtMixin):
    """Low-stock, out-of-stock or expiring-soon notice for an item."""

    __tablename__ = "pantry_notifications"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    item_id = Column(
        Integer, ForeignKey("pantry_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name = Column(String(255), nullable=False)  # Denormalized for listings
    type = Column(String(20), nullable=False)
    message = Column(String(255), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)

    # Relationships
    item = relationship("PantryItem", back_populates="notifications")
