"""Enums for model fields."""

from enum import Enum


class CategoryKind(str, Enum):
    """Visibility kind of a pantry category."""

    PREDEFINED = "predefined"
    CUSTOM = "custom"


class NotificationType(str, Enum):
    """Derived pantry notification types."""

    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"
    EXPIRING_SOON = "expiring_soon"

    @property
    def is_stock_level(self) -> bool:
        """Check if this type describes the stock level (mutually exclusive types)."""
        return self in (NotificationType.LOW_STOCK, NotificationType.OUT_OF_STOCK)


class HistoryAction(str, Enum):
    """Actions recorded in the pantry history ledger."""

    ADD = "add"
    USE = "use"
    REMOVE = "remove"
