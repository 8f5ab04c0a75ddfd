"""Error taxonomy shared by the routes and the scheduling services.

Every error carries the HTTP status it maps to and a message that is safe to
show to the caller. ``main.py`` renders them as ``{"error": message}``.
"""


class SchedulingError(Exception):
    status_code = 400
    default_message = 'Request could not be processed.'

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SchedulingError):
    """Missing or malformed input."""
    status_code = 400
    default_message = 'Missing required fields'


class NotFoundError(SchedulingError):
    status_code = 404
    default_message = 'Not found'


class ConflictError(SchedulingError):
    """The requested time or slug is already taken."""
    status_code = 400
    default_message = 'This time slot is no longer available'


class StoreError(SchedulingError):
    """Persistence failure. The message never includes driver details."""
    status_code = 500
    default_message = 'Internal server error'
