"""Error taxonomy for the restaurant directory.

Services raise these errors; the HTTP layer maps each one to a status code via
its ``status_code`` attribute. Every error is terminal for the current request.
"""


class DirectoryError(Exception):
    """Base class for all expected directory failures."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DirectoryError):
    """A required field is missing or a value is invalid."""

    status_code = 400


class DuplicateEmailError(DirectoryError):
    """Another restaurant already uses the requested email."""

    status_code = 400


class UnauthorizedError(DirectoryError):
    """The acting identity may not perform the operation."""

    status_code = 401


class NotFoundError(DirectoryError):
    """A referenced restaurant, menu or menu item does not exist."""

    status_code = 404


class ItemNotFoundError(NotFoundError):
    """No menu item with the given id exists in the restaurant's menu."""


class ConflictError(DirectoryError):
    """A concurrent write changed the aggregate between read and write."""

    status_code = 409


class UploadFailedError(DirectoryError):
    """The image could not be stored in object storage."""

    status_code = 500


class PersistenceError(DirectoryError):
    """The persistence layer rejected or failed a write."""

    status_code = 500
