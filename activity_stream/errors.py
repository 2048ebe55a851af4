"""
Domain exceptions raised by the activity store and its callers.
"""


class ActivityError(Exception):
    """Base class for activity stream errors."""


class NotFound(ActivityError):
    """A referenced activity or user does not exist."""

    def __init__(self, resource: str, id=None):
        self.resource = resource
        self.id = id
        message = f"{resource} not found" if id is None else f"{resource} '{id}' not found"
        super().__init__(message)


class ValidationFailure(ActivityError):
    """A required field was missing or empty."""

    def __init__(self, message: str, field: str = None):
        self.field = field
        super().__init__(message)


class StoreFailure(ActivityError):
    """The underlying persistence call failed."""
