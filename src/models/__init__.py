"""SQLAlchemy models."""

from src.models.group import Group
from src.models.pantry import PantryItem
from src.models.pantry_category import PantryCategory
from src.models.pantry_history import PantryHistory
from src.models.pantry_notification import PantryNotification
from src.models.user import User

__all__ = [
    "Group",
    "User",
    "PantryCategory",
    "PantryItem",
    "PantryNotification",
    "PantryHistory",
]
