"""
API 전역에서 사용하는 예외 정의.

서비스 계층은 HTTPException 대신 아래 예외를 던지고,
app.main 에 등록된 핸들러가 status code 와 응답 envelope 으로 변환합니다.
"""
from typing import Optional


class AppError(Exception):
    """Base class for errors surfaced to the API layer."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Invalid request"


class AuthError(AppError):
    status_code = 401
    default_message = "Could not validate credentials"


class InvalidCredentials(AuthError):
    default_message = "Invalid credentials"


class RefreshTokenNotFound(AuthError):
    default_message = "Invalid refresh token"


class RefreshTokenRevoked(AuthError):
    default_message = "Refresh token has been revoked"


class RefreshTokenExpired(AuthError):
    default_message = "Refresh token has expired"


class InvalidAccessToken(AuthError):
    default_message = "Invalid token"


class AccessTokenExpired(AuthError):
    default_message = "Token has expired"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(AppError):
    status_code = 500
    default_message = "Internal server error"
