"""Pantry notification schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationResponse(BaseModel):
    """Pantry notification response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    item_id: int
    item_name: str
    type: str
    message: str
    is_read: bool
    created_at: datetime
