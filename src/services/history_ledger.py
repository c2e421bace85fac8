"""Append-only pantry history ledger."""

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models.enums import HistoryAction
from src.models.pantry_history import PantryHistory
from src.models.user import User

logger = logging.getLogger(__name__)


class HistoryLedger:
    """Writes and reads the audit trail of quantity changes.

    Entries are observational: `record` runs after the mutation has committed,
    in its own transaction, and a failure is logged rather than raised.
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        *,
        group_id: int,
        item_id: int,
        item_name: str,
        action: HistoryAction,
        quantity: float,
        actor: User,
    ) -> PantryHistory | None:
        """Append one entry. Returns None if it could not be written."""
        try:
            entry = PantryHistory(
                group_id=group_id,
                item_id=item_id,
                item_name=item_name,
                action=action.value,
                quantity=quantity,
                user_id=actor.id,
                user_name=actor.display_name,
            )
            self.db.add(entry)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record {action.value} history for item {item_id}: {e}")
            return None

        logger.debug(f"History: {action.value} {quantity:+g} on item {item_id} by {actor.id}")
        return entry

    def list_for_group(
        self, group_id: int, item_id: int | None = None, limit: int | None = None
    ) -> list[PantryHistory]:
        """History of a group (optionally one item), newest first."""
        query = self.db.query(PantryHistory).filter(PantryHistory.group_id == group_id)
        if item_id is not None:
            query = query.filter(PantryHistory.item_id == item_id)
        query = query.order_by(PantryHistory.created_at.desc(), PantryHistory.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()
