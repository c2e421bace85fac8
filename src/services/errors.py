"""Domain errors raised by the pantry services.

Every error carries the HTTP status the API layer answers with, so endpoints
never translate errors by hand:

- ValidationError / InvalidRefError / InsufficientQuantityError: 400
- ForbiddenError: 403
- NotFoundError: 404
- ConflictError: 409
- TransientStoreError: 500
"""


class PantryError(Exception):
    """Base class for pantry errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(PantryError):
    """Malformed input, rejected before the store is touched."""

    status_code = 400


class InvalidRefError(ValidationError):
    """A reference (category, item) that cannot be parsed."""


class NotFoundError(PantryError):
    """The referenced group, item, category or notification does not exist."""

    status_code = 404


class ForbiddenError(PantryError):
    """The actor is not allowed to touch the target resource."""

    status_code = 403


class ConflictError(PantryError):
    """Name collision or a category that is still in use."""

    status_code = 409


class InsufficientQuantityError(PantryError):
    """A use request exceeds the stock on hand."""

    status_code = 400

    def __init__(self, message: str, available: float | None = None) -> None:
        super().__init__(message)
        self.available = available


class TransientStoreError(PantryError):
    """Transaction start or commit failed. Never retried automatically."""

    status_code = 500
