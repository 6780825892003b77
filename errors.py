"""
Error taxonomy for the Planora API.

Every failure a handler can report is an ``ApiError`` carrying the HTTP status
it maps to. ``main`` turns them into the ``{"error": message}`` envelope.
"""

from typing import Optional


class ApiError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, details: Optional[str] = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class AuthenticationFailed(ApiError):
    status_code = 401
    default_message = "Invalid credentials"


class MissingCredential(ApiError):
    status_code = 401
    default_message = "No token provided"


class InvalidCredential(ApiError):
    status_code = 403
    default_message = "Invalid token"


class Forbidden(ApiError):
    status_code = 403
    default_message = "Unauthorized"


class NotFound(ApiError):
    status_code = 404
    default_message = "Not found"


class InvalidInput(ApiError):
    status_code = 400
    default_message = "Invalid input"


class Conflict(ApiError):
    # duplicate registrations have always answered 400
    status_code = 400
    default_message = "Already exists"


class StorageError(ApiError):
    status_code = 500
    default_message = "Storage failure"


class UpstreamError(ApiError):
    status_code = 500
    default_message = "Upstream service failure"
