"""Celery tasks for periodic pantry maintenance."""

import logging
from datetime import UTC, datetime

from sqlalchemy.orm import Session

from src.celery_app import app as celery_app
from src.database import SessionLocal
from src.services.notification_engine import NotificationEngine

logger = logging.getLogger(__name__)


@celery_app.task
def scan_expiring_items() -> dict:
    """Raise expiring-soon notifications for items that entered the window.

    Runs on the celery-beat schedule (`expiry_scan_interval_minutes`).

    Returns:
        dict with processing statistics
    """
    db: Session = SessionLocal()
    try:
        started_at = datetime.now(UTC)
        created = NotificationEngine(db).scan_expiring(started_at)
        return {"created": created, "scanned_at": started_at.isoformat()}
    finally:
        db.close()
