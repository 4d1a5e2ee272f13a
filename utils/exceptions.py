"""
Error taxonomy for the session/credential subsystem.

Every failure the API can report is one of these. Handlers in api.errors turn
them into the uniform `{success, error, code}` envelope with a stable status.
Token failures (bad signature, wrong type, expired) all collapse into
InvalidToken so clients cannot tell which check failed.
"""
from __future__ import annotations


class AuthError(Exception):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status = 500

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class InvalidCredentials(AuthError):
    code = "INVALID_CREDENTIALS"
    message = "Invalid email or password"
    status = 401


class AlreadyExists(AuthError):
    code = "USER_EXISTS"
    message = "User with this email already exists"
    status = 409


class InvalidToken(AuthError):
    code = "INVALID_TOKEN"
    message = "Invalid or expired token"
    status = 401


class TokenReuseDetected(AuthError):
    code = "TOKEN_REUSE_DETECTED"
    message = "Refresh token has been revoked"
    status = 401


class Unauthorized(AuthError):
    code = "UNAUTHORIZED"
    message = "Unauthorized"
    status = 401


class Forbidden(AuthError):
    code = "FORBIDDEN"
    message = "Forbidden"
    status = 403


class NotFound(AuthError):
    code = "USER_NOT_FOUND"
    message = "User not found"
    status = 404


class InternalError(AuthError):
    pass
