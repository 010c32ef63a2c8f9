"""Exception types raised by the stores and services, mapped to HTTP status by the handlers."""


class AnalyticsError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    public_message = "Internal error"


class ValidationError(AnalyticsError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class StorageWriteError(AnalyticsError):
    public_message = "Failed to save event data"


class StorageQueryError(AnalyticsError):
    public_message = "Failed to retrieve data"
