"""Domain errors raised by the services and mapped to HTTP status codes."""


class LibraryError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LibraryError):
    status_code = 400


class NotFound(LibraryError):
    status_code = 404


class AlreadyExists(LibraryError):
    status_code = 400


class InvalidCredentials(LibraryError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)
