import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class MatchdayError(Exception):
    """Base for all application-level errors."""
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MatchdayError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(MatchdayError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFound(MatchdayError):
    status_code = status.HTTP_404_NOT_FOUND


class Conflict(MatchdayError):
    # Already finalized, duplicate vote, closed voting window
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(MatchdayError):
    status_code = status.HTTP_403_FORBIDDEN


class InternalError(MatchdayError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


async def matchday_error_handler(request: Request, exc: MatchdayError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message}
    )


async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("%s %s hit a storage error", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=InternalError.status_code,
        content={"success": False, "message": str(exc)}
    )


def add_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MatchdayError, matchday_error_handler)
    app.add_exception_handler(SQLAlchemyError, storage_error_handler)
