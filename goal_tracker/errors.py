"""
Error types raised by the handlers and the auth core.

Every error maps to one HTTP status and is rendered as
``{"success": false, "message": ...}`` by the handlers registered in
``fastapi_app``.
"""
from typing import Dict, Optional


class APIError(Exception):
    status_code: int = 500

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class BadRequest(APIError):
    status_code = 400


class Unauthorized(APIError):
    status_code = 401

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(APIError):
    status_code = 403


class NotFound(APIError):
    status_code = 404


class Expired(APIError):
    status_code = 400


class UserAlreadyExists(APIError):
    status_code = 400


class MailerError(APIError):
    status_code = 500
