"""
Domain errors raised by the service layer.

Routers do not catch these; a single handler registered in ``main``
turns any ``ServiceError`` into a JSON ``{"detail": ...}`` response with
the error's status code.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse


class ServiceError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: str = "Bad request"

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class UnauthorizedError(ServiceError):
    # Also used when an authenticated caller is not the owner of a PRIVATE
    # article; ownership is never reported separately from authentication.
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"


class ConflictError(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    detail = "Conflict"


class BadCredentialsError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Login or password is incorrect"


class InactiveUserError(ServiceError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "User is not active"


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    headers = None
    if exc.status_code == status.HTTP_401_UNAUTHORIZED:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )
