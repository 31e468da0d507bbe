"""Portal exceptions.

Every error carries a ``message`` that is safe to show to the end user.
Screens catch :class:`PortalError` and surface ``message`` as a notification.
"""

from typing import Iterable, Optional


class PortalError(Exception):
    """Base class for portal errors."""

    default_message = "Could not complete the operation, please try again."

    def __init__(
        self,
        message: Optional[str] = None,
        original_exception: Optional[Exception] = None,
    ) -> None:
        self.message = message or self.default_message
        self.original_exception = original_exception
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.original_exception:
            return f"{self.message} (Original error: {self.original_exception})"
        return self.message


class ValidationError(PortalError):
    """Missing field, negative quantity, unknown enum value, empty order."""

    default_message = "Invalid input."


class NotFoundError(PortalError):
    default_message = "Record not found."


class UnknownSkuError(NotFoundError):
    def __init__(self, skus: Iterable[str]) -> None:
        self.skus = list(skus)
        super().__init__(
            "These SKUs do not exist in the catalog: " + ", ".join(self.skus)
        )


class NoActiveClientError(NotFoundError):
    default_message = "There is no active client to assign the order to."


class DuplicateError(PortalError):
    """Unique constraint violation (SKU, client code)."""

    default_message = "A record with that key already exists."


class ReferencedError(PortalError):
    """Delete blocked because other rows still point at the record."""

    default_message = "The record is still in use and cannot be deleted."


class InvalidTransitionError(PortalError):
    default_message = "That status change is not allowed."


class OrderLockedError(InvalidTransitionError):
    default_message = "The order is already being prepared and can no longer be edited."


class OrderNotDeletableError(InvalidTransitionError):
    default_message = "Only orders that have been shipped can be deleted."


class PersistenceError(PortalError):
    """Unexpected storage failure. Details go to the log, never to the user."""

    def __init__(self, original_exception: Optional[Exception] = None) -> None:
        super().__init__(None, original_exception)
