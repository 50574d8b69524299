# petalstore/domain/errors.py
"""Failures the storefront core reports to its callers.

Each class also derives from the built-in exception that callers already
branch on (PermissionError, ValueError, LookupError), so the HTTP layer maps
them the same way it maps the built-ins.
"""


class StorefrontError(Exception):
    """Base class; ``message`` is shown to the shopper as-is."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LoginRequired(StorefrontError, PermissionError):
    def __init__(self, action: str):
        super().__init__(f"Please sign in to {action}.")
        self.action = action


class Forbidden(StorefrontError, PermissionError):
    pass


class ValidationError(StorefrontError, ValueError):
    pass


class InvalidRating(ValidationError):
    def __init__(self, rating):
        super().__init__(f"Rating must be a whole number between 1 and 5, got {rating!r}.")
        self.rating = rating


class InvalidTransition(ValidationError):
    def __init__(self, current: str, target: str):
        super().__init__(f"Order cannot move from '{current}' to '{target}'.")
        self.current = current
        self.target = target


class NotFound(StorefrontError, LookupError):
    pass


class AlreadyReviewed(StorefrontError):
    def __init__(self):
        super().__init__("You already reviewed this product for that order.")


class PersistenceFailure(StorefrontError):
    pass


class OrderPlacementFailed(PersistenceFailure):
    pass
