from fastapi import status


class InventoryError(Exception):
    """Base class for failures surfaced to the user as a notice."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Something went wrong"

    def __init__(self, message=None):
        self.message = (message or "").strip() or self.default_message
        super().__init__(self.message)


class Unauthenticated(InventoryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class NotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Part not found"


class ValidationError(InventoryError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class BackendError(InventoryError):
    """Failure reported by the table, storage or auth service; message kept verbatim."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Backend request failed"


__all__ = [
    "BackendError",
    "InventoryError",
    "NotFound",
    "Unauthenticated",
    "ValidationError",
]
