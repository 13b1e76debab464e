"""
Client-Side Validation Errors
=============================

Errors raised synchronously by the controllers before any network call is
attempted. They are never retried and never reach a background thread.

Transport failures live in ``bugboard.core.api_client`` and per-family service
failures in ``bugboard.core.services``; all of them share ``BugBoardError`` as
a common base so UI code can catch the whole family in one place.
"""


class BugBoardError(Exception):
    """Base exception for all BugBoard client errors."""
    pass


class ValidationError(BugBoardError, ValueError):
    """Raised when user input is empty or otherwise invalid."""
    pass


class NotLoggedInError(BugBoardError):
    """Raised when an operation requires an authenticated session."""
    pass


class NotAuthorizedError(BugBoardError):
    """Raised when the current user lacks the role an operation requires."""
    pass
