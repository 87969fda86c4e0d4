"""Error taxonomy shared by services and routes.

Services raise these; routes and the app-level handlers in ``app.main``
map them to HTTP status codes.
"""


class AppError(Exception):
    """Base class for errors raised by this service."""
    pass


class Unauthenticated(AppError):
    """No valid identity on the request."""
    pass


class InvalidInput(AppError, ValueError):
    """A required field is missing or malformed."""
    pass


class StorageFailure(AppError):
    """The backing store was unreachable or rejected the operation."""
    pass


class NotResolved(AppError, LookupError):
    """A selected model id matches nothing in the catalog, default included."""
    pass
