from __future__ import annotations

from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from erpmini.errors import ConflictError, LedgerError, NotFoundError, ValidationError
from erpmini.logging_config import get_logger

logger = get_logger(__name__)

STATUS_BY_ERROR: dict[type[LedgerError], int] = {
    ValidationError: 400,
    NotFoundError: 404,
    ConflictError: 409,
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'error': True, 'status': HTTPStatus(status_code).phrase, 'message': message},
    )


def status_for(exc: LedgerError) -> int:
    for error_cls, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_cls):
            return status_code
    return 400


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError):
        return error_response(status_for(exc), exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        first = exc.errors()[0] if exc.errors() else {}
        location = '.'.join(str(part) for part in first.get('loc', ()) if part != 'body')
        message = first.get('msg', 'Invalid request')
        return error_response(422, f'{location}: {message}' if location else message)

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception('storage error', extra={'path': request.url.path, 'method': request.method})
        return error_response(500, 'internal server error')
