"""
Application error taxonomy.

Every expected, client-facing failure is an AppError with is_operational=True.
Anything that is not an AppError is treated as a programming/unknown error by
the error handlers and never described to the client in production.
"""

from typing import Any, Dict, List, Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status code."""

    def __init__(self, message: str, status_code: int = 500, is_operational: bool = True):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.is_operational = is_operational

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

    def field_errors(self) -> Dict[str, List[str]]:
        """Per-field messages for the development envelope."""
        return {"error": [self.message]}


class NotFoundError(AppError):
    def __init__(self, message: str = "No document found with that ID"):
        super().__init__(message, 404)


class InvalidIdentifierError(AppError):
    """Raised when an identifier or typed value cannot be parsed."""

    def __init__(self, path: str, value: Any):
        label = "ID" if path == "id" else "value"
        super().__init__(f'Invalid {path}: "{value}". Please provide a valid {label}', 400)
        self.path = path
        self.value = value


class ValidationFailedError(AppError):
    """Raised with one or more messages per offending field."""

    def __init__(self, errors: Dict[str, List[str]], message: Optional[str] = None):
        if message is None:
            parts = [f"{field}: {'; '.join(messages)}" for field, messages in errors.items()]
            message = f"Invalid input data. {'. '.join(parts)}"
        super().__init__(message, 400)
        self.errors = errors

    def field_errors(self) -> Dict[str, List[str]]:
        return self.errors


class DuplicateKeyError(AppError):
    def __init__(self, field: str, value: Any):
        super().__init__(
            f"The {field} (({value})) already exists. Please choose a different {field}.", 400
        )
        self.field = field
        self.value = value

    def field_errors(self) -> Dict[str, List[str]]:
        return {self.field: [self.message]}


class AuthenticationError(AppError):
    def __init__(self, message: str = "You are not logged in! Please log in to get access."):
        super().__init__(message, 401)


class TokenInvalidError(AuthenticationError):
    def __init__(self):
        super().__init__("Invalid Token, please login again!")


class TokenExpiredError(AuthenticationError):
    def __init__(self):
        super().__init__("Your token has expired, please login again!")


class PermissionDeniedError(AppError):
    def __init__(self, message: str = "You do not have permission to perform this action"):
        super().__init__(message, 403)


class UploadTypeError(AppError):
    def __init__(self):
        super().__init__("Not an image! Please upload only images.", 400)


class UploadCountError(AppError):
    def __init__(self, field: str, max_count: int):
        noun = "image" if max_count == 1 else "images"
        super().__init__(f"You cannot add more than {max_count} {noun} to {field}", 400)
        self.field = field
        self.max_count = max_count


class MailDeliveryError(AppError):
    def __init__(self, message: str = "There was an error sending the email. Try again later!"):
        super().__init__(message, 500)


class MalformedRequestError(AppError):
    def __init__(self, detail: str = "Invalid request format"):
        super().__init__(detail, 400)


class RateLimitExceededError(AppError):
    def __init__(self, message: str = "Too many requests from this IP, please try again in a minute!"):
        super().__init__(message, 429)
