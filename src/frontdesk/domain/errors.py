"""Domain error taxonomy.

Each error maps to one HTTP status at the request boundary
(see frontdesk.api.errors); domain code never builds HTTP responses.
"""


class FrontDeskError(Exception):
    """Base class for expected business-rule failures."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(FrontDeskError):
    """Raised when a room, reservation, billing record or user does not exist."""

    status_code = 404


class ForbiddenError(FrontDeskError):
    """Raised when the caller's role or ownership does not permit the action."""

    status_code = 403


class ReservationConflictError(FrontDeskError):
    """Raised when a room already has an active reservation overlapping the dates."""

    def __init__(
        self,
        room_id: str,
        conflicting_reservation_id: str | None,
        message: str = "Room is not available for selected dates",
    ) -> None:
        self.room_id = room_id
        self.conflicting_reservation_id = conflicting_reservation_id
        super().__init__(message)


class InvalidTransitionError(FrontDeskError):
    """Raised when a status change is not permitted from the current status."""


class ValidationError(FrontDeskError):
    """Raised for malformed input that passed schema validation."""
