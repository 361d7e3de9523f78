"""
Domain errors raised by the service layer.

Each error carries the HTTP status it is rendered with; the handlers in
``eventhub.main`` turn them into ``{"error": message}`` responses.
"""

from typing import Optional

from fastapi import status


class EventHubError(Exception):
    """Base class for all errors surfaced to API callers."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Action failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationFailed(EventHubError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class AuthenticationRequired(EventHubError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class AdminRequired(EventHubError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class RegistrationNotFound(EventHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Registration not found"


class EventNotFound(EventHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Event not found"


class UserNotFound(EventHubError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "User not found"


class AlreadyRegistered(EventHubError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already registered."


class InvalidTransition(EventHubError):
    """A status change that the state machine does not allow from the current status."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change registration from '{current}' to '{requested}'.")


class CapacityExceeded(EventHubError):
    """Not enough free slots to approve; the whole transaction is rolled back."""

    def __init__(self, event_title: Optional[str], needed: int, available: int, batch: bool = False):
        self.event_title = event_title
        self.needed = needed
        self.available = available
        if not batch:
            message = "No available slots for this event."
        else:
            message = (
                f'Not enough available slots for event "{event_title}". '
                f"Needed {needed}, available {available}."
            )
        super().__init__(message)
