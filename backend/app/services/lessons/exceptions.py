# backend/app/services/lessons/exceptions.py


class ScheduleValidationError(ValueError):
    """Malformed schedule input, rejected before any expansion runs."""


class BookingError(Exception):
    """Booking could not be admitted or changed."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PartialInsertError(Exception):
    """A bulk slot insert failed part-way; earlier chunks stay committed."""

    def __init__(self, inserted: list, failed_count: int, cause: Exception):
        super().__init__(f"{failed_count} slot rows failed to insert: {cause}")
        self.inserted = inserted
        self.failed_count = failed_count
        self.cause = cause
