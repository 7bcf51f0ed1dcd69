"""Domain exceptions raised by LabLink services."""

from datetime import datetime


class LabLinkError(Exception):
    """Base class for service-level failures."""


class NoEligibleLabsError(LabLinkError):
    """Raised when scoring produced no candidate lab at all."""

    def __init__(self, message: str = "No available labs found"):
        super().__init__(message)


class AssignmentWriteError(LabLinkError):
    """Raised when the chosen lab could not be persisted onto the order."""


class RateLimitExceededError(LabLinkError):
    """Raised when a caller is over its request budget for an endpoint."""

    def __init__(self, message: str, reset_at: datetime, retry_after: int):
        super().__init__(message)
        self.reset_at = reset_at
        self.retry_after = retry_after
