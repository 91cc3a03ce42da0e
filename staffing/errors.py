from __future__ import annotations


class StaffingError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class BadRequestError(StaffingError):
    status_code = 400


class CapacityExceededError(BadRequestError):
    def __init__(self, available: int) -> None:
        super().__init__(f"Assignment exceeds engineer's capacity. Available: {available}%")
        self.available = available


class AuthenticationError(StaffingError):
    status_code = 401


class PermissionDenied(StaffingError):
    status_code = 403


class NotFoundError(StaffingError):
    status_code = 404
