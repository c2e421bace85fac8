"""Pantry history schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class HistoryEntryResponse(BaseModel):
    """One entry of the pantry audit trail."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    item_id: int
    item_name: str
    action: str
    quantity: float
    user_id: int
    user_name: str
    created_at: datetime
