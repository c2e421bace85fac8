"""Pantry history model: append-only audit of quantity changes."""

from sqlalchemy import Column, Float, ForeignKey, Integer, String

from src.database import Base
from src.models.mixins import CreatedAtMixin


class PantryHistory(Base, CreatedAtMixin):
    """One quantity-changing action on a pantry item.

    item_id is not a foreign key: entries outlive the item they
    describe (a `remove` entry is written after the row is gone).
    """

    __tablename__ = "pantry_history"

    id = Column(Integer, primary_key=True, index=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=False, index=True)
    item_id = Column(Integer, nullable=False, index=True)
    item_name = Column(String(255), nullable=False)
    action = Column(String(20), nullable=False)
    quantity = Column(Float, nullable=False)  # Signed delta
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
