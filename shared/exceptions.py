"""
Exceptions raised by the API layer and its collaborators.

Each carries the HTTP status it maps to; the Flask app turns them into
`{"error": message}` responses.
"""


class StemcastError(Exception):
    """Base error for the DJ service."""

    status = 500

    def __init__(self, message: str, status: int = None):
        self.message = message
        if status is not None:
            self.status = status
        super().__init__(self.message)


class BadRequestError(StemcastError):
    status = 400


class NotFoundError(StemcastError):
    status = 404


class StorageError(StemcastError):
    """Object storage could not serve a requested object."""
    status = 500
