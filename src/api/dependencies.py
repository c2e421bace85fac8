"""FastAPI dependencies for authentication, database and services."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.config import get_settings
from src.database import get_db
from src.models.user import User
from src.services.auth import get_user_from_token
from src.services.category_resolver import CategoryResolver
from src.services.errors import ForbiddenError
from src.services.history_ledger import HistoryLedger
from src.services.notification_engine import NotificationEngine
from src.services.pantry_queries import PantryQueries
from src.services.pantry_service import PantryService

security = HTTPBearer()


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from JWT token."""
    user = get_user_from_token(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def resolve_group_id(user: User, group_id: int | None = None) -> int:
    """Pick the target group of a request, defaulting to the caller's own group."""
    if group_id is None:
        group_id = user.group_id
    if group_id is None or not user.is_member_of(group_id):
        raise ForbiddenError("User is not a member of this group")
    return group_id


def get_category_resolver(
    db: Annotated[Session, Depends(get_db)],
) -> CategoryResolver:
    """Get category resolver bound to the request session."""
    return CategoryResolver(db)


def get_notification_engine(
    db: Annotated[Session, Depends(get_db)],
) -> NotificationEngine:
    """Get notification engine bound to the request session."""
    return NotificationEngine(db, get_settings())


def get_history_ledger(
    db: Annotated[Session, Depends(get_db)],
) -> HistoryLedger:
    """Get history ledger bound to the request session."""
    return HistoryLedger(db)


def get_pantry_service(
    db: Annotated[Session, Depends(get_db)],
) -> PantryService:
    """Get pantry service with its collaborators."""
    settings = get_settings()
    return PantryService(
        db,
        categories=CategoryResolver(db),
        notifications=NotificationEngine(db, settings),
        history=HistoryLedger(db),
        settings=settings,
    )


def get_pantry_queries(
    db: Annotated[Session, Depends(get_db)],
) -> PantryQueries:
    """Get read-side pantry queries."""
    return PantryQueries(db, get_settings())
