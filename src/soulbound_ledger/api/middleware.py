"""Custom middleware and exception handlers for RFC 9457 problem responses."""

from typing import Callable, Optional

from fastapi import Request, Response, status
from fastapi.exceptions import HTTPException, RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..domain.errors import LedgerError, Unauthorized
from ..store.event_store import EventStoreError
from ..utils.logging_config import get_logger, log_exception

logger = get_logger('api')

STATUS_TITLES = {
    400: "Bad Request",
    401: "Unauthorized",
    403: "Forbidden",
    404: "Not Found",
    409: "Conflict",
    413: "Payload Too Large",
    422: "Unprocessable Entity",
    500: "Internal Server Error",
    503: "Service Unavailable",
}


class ProblemDetailsException(HTTPException):
    """Enhanced HTTPException that includes RFC 9457 Problem Details."""

    def __init__(
        self,
        status_code: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: Optional[str] = None,
        instance: Optional[str] = None,
        **extra_fields,
    ):
        super().__init__(status_code=status_code, detail=detail)
        self.title = title
        self.type_uri = type_uri or f"https://httpstatuses.com/{status_code}"
        self.instance = instance
        self.extra_fields = extra_fields


def problem_response(
    status_code: int,
    title: Optional[str] = None,
    detail: Optional[str] = None,
    type_uri: Optional[str] = None,
    instance: Optional[str] = None,
    **extra_fields,
) -> JSONResponse:
    """Create a JSON response in RFC 9457 Problem Details format."""
    problem = {
        "type": type_uri or f"https://httpstatuses.com/{status_code}",
        "title": title or STATUS_TITLES.get(status_code, "HTTP Error"),
        "status": status_code,
    }

    if detail:
        problem["detail"] = detail
    if instance:
        problem["instance"] = instance

    # Add any extra fields
    problem.update(extra_fields)

    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(problem),
        media_type="application/problem+json",
    )


def ledger_status_code(exc: LedgerError) -> int:
    """HTTP status for a rejected ledger call."""
    if isinstance(exc, Unauthorized):
        return status.HTTP_403_FORBIDDEN
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    """Render a ledger precondition failure as problem details."""
    return problem_response(
        status_code=ledger_status_code(exc),
        title="Ledger call rejected",
        detail=exc.message,
        instance=str(request.url),
        code=exc.code.value,
    )


async def event_store_error_handler(request: Request, exc: EventStoreError) -> JSONResponse:
    """Render a persistence failure; the call was rolled back."""
    return problem_response(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        title="Ledger unavailable",
        detail="The call could not be recorded and was rolled back",
        instance=str(request.url),
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render HTTP exceptions raised by routes and dependencies as problem details."""
    if isinstance(exc, ProblemDetailsException):
        return problem_response(
            status_code=exc.status_code,
            title=exc.title,
            detail=exc.detail,
            type_uri=exc.type_uri,
            instance=exc.instance or str(request.url),
            **exc.extra_fields,
        )
    return problem_response(
        status_code=exc.status_code,
        detail=exc.detail if isinstance(exc.detail, str) else None,
        instance=str(request.url),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as problem details."""
    return problem_response(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        title="Validation Error",
        detail="Request validation failed",
        instance=str(request.url),
        errors=exc.errors(),
    )


class ProblemDetailsMiddleware(BaseHTTPMiddleware):
    """Middleware to convert exceptions escaping inner middleware to Problem Details."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            response = await call_next(request)
            return response
        except ProblemDetailsException as exc:
            return problem_response(
                status_code=exc.status_code,
                title=exc.title,
                detail=exc.detail,
                type_uri=exc.type_uri,
                instance=exc.instance or str(request.url),
                **exc.extra_fields,
            )
        except HTTPException as exc:
            return problem_response(
                status_code=exc.status_code,
                detail=exc.detail,
                instance=str(request.url),
            )
        except Exception as exc:
            log_exception('api', exc, {"path": request.url.path, "method": request.method})
            return problem_response(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                title="Internal Server Error",
                detail="An unexpected error occurred",
                instance=str(request.url),
            )


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce request size limits."""

    def __init__(
        self,
        app: ASGIApp,
        single_request_limit: int = 16 * 1024,  # 16KB
        batch_request_limit: int = 64 * 1024,  # 64KB
    ):
        super().__init__(app)
        self.single_request_limit = single_request_limit
        self.batch_request_limit = batch_request_limit

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        content_length = request.headers.get("content-length")
        if content_length:
            try:
                length = int(content_length)
            except ValueError:
                raise ProblemDetailsException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    title="Bad Request",
                    detail="Invalid Content-Length header",
                )

            # Batch endpoints carry lists and get the larger limit
            is_batch = request.url.path.endswith(("/batch", ":batch"))
            limit = self.batch_request_limit if is_batch else self.single_request_limit

            if length > limit:
                logger.warning(
                    f"Rejected {request.method} {request.url.path}: {length} bytes > {limit}"
                )
                raise ProblemDetailsException(
                    status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                    title="Request Entity Too Large",
                    detail=f"Request size {length} bytes exceeds limit of {limit} bytes",
                    type_uri="https://datatracker.ietf.org/doc/html/rfc7231#section-6.5.11",
                )

        return await call_next(request)
