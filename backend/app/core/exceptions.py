"""Domain errors raised by services and route handlers.

Every error carries a human-readable message that is returned verbatim to
the client as ``{"detail": message}`` by the handler registered in
``app.main``.
"""

from fastapi import status


class InventoryError(Exception):
    """Base class for all domain errors."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotAuthenticated(InventoryError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message)


class PermissionDenied(InventoryError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(InventoryError):
    status_code = status.HTTP_409_CONFLICT


class InvalidOperation(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST


class InsufficientStock(InvalidOperation):
    """Raised when a movement would take stock (or a batch) below zero."""

    def __init__(self, supply_name: str, available: int, requested: int):
        self.supply_name = supply_name
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for '{supply_name}': requested {requested}, available {available}"
        )
