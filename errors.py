"""Domain errors raised by the services and translated at the HTTP boundary."""


class LibraryError(Exception):
    """Base class for errors that map to a specific client-facing status."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(LibraryError):
    status_code = 404


class ConflictError(LibraryError):
    status_code = 400


class InvalidCredentialsError(LibraryError):
    status_code = 400

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class PendingApprovalError(LibraryError):
    status_code = 403

    def __init__(self, message: str = "Your account is pending approval") -> None:
        super().__init__(message)


class ForbiddenError(LibraryError):
    status_code = 403


class InvalidInputError(LibraryError):
    status_code = 400


class SigningError(Exception):
    """Token could not be signed. Not a client error."""
