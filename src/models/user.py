"""User model."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from src.database import Base
from src.models.mixins import TimestampMixin


class User(Base, TimestampMixin):
    """User as known to the pantry: identity, display name and group."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=True)
    group_id = Column(Integer, ForeignKey("groups.id"), nullable=True, index=True)

    # Relationships
    group = relationship("Group", backref="members")

    @property
    def display_name(self) -> str:
        """Name shown in history and item listings."""
        return self.name or self.email

    def is_member_of(self, group_id: int) -> bool:
        """Check if the user belongs to the given group."""
        return self.group_id is not None and self.group_id == group_id
