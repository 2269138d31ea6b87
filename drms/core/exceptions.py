from fastapi import HTTPException
from typing import Optional, Any


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        error_code: str,
        message: str,
        details: Optional[Any] = None,
    ):
        super().__init__(status_code=status_code, detail={
            "code": error_code,
            "message": message,
            "details": details,
        })
        self.error_code = error_code
        self.message = message
        self.details = details


class NotFoundError(AppException):
    def __init__(self, resource: str, resource_id: Any):
        super().__init__(
            status_code=404,
            error_code=f"{resource.upper()}_NOT_FOUND",
            message=f"{resource} not found: {resource_id}",
        )


class ConflictError(AppException):
    def __init__(self, error_code: str, message: str, details: Optional[Any] = None):
        super().__init__(
            status_code=409,
            error_code=error_code,
            message=message,
            details=details,
        )


class ValidationError(AppException):
    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(
            status_code=400,
            error_code="VALIDATION_ERROR",
            message=message,
            details=details,
        )


class AuthenticationError(AppException):
    """Authentication failure (401)"""
    def __init__(self, code: str, message: str):
        super().__init__(
            status_code=401,
            error_code=code,
            message=message,
        )
        self.headers = {"WWW-Authenticate": "Bearer"}


class AuthorizationError(AppException):
    """Authorization failure (403)"""
    def __init__(self, code: str, message: str):
        super().__init__(
            status_code=403,
            error_code=code,
            message=message,
        )
