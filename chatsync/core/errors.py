import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from chatsync.core.result import Err, ErrorKind

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.NOT_AUTHENTICATED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_FAILURE: 400,
    ErrorKind.REMOTE_FAILURE: 500,
}


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 500)


class AppError(Exception):
    def __init__(self, message: str, status_code: int = 400, kind: ErrorKind = ErrorKind.VALIDATION_FAILURE):
        self.message = message
        self.status_code = status_code
        self.kind = kind
        super().__init__(message)

    @classmethod
    def from_err(cls, err: Err) -> "AppError":
        return cls(err.message, status_for(err.kind), err.kind)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(_: Request, exc: AppError):
        logger.warning("AppError %s (%s): %s", exc.status_code, exc.kind.value, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "kind": exc.kind.value},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(_: Request, exc: RequestValidationError):
        return JSONResponse(status_code=422, content={"detail": jsonable_encoder(exc.errors())})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )
