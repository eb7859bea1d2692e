"""
Renders every error as a JSON body of the form {"detail": ..., "code": ...}.

Booking-core errors carry their own code. Request validation failures become
`invalid_request`, and the framework's own HTTP errors (unknown route, wrong
method) get a code derived from their status.
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from railbook.core.exceptions import InvalidRequest, RailbookError
from railbook.core.logging import get_logger

logger = get_logger(__name__)

STATUS_CODES = {
    400: "bad_request",
    401: "unauthenticated",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


async def railbook_error_handler(request: Request, exc: RailbookError) -> JSONResponse:
    request.state.error_code = exc.code
    if exc.status_code >= 500:
        logger.error("request_error", code=exc.code, detail=exc.message)
    else:
        logger.info("request_rejected", code=exc.code, detail=exc.message)

    headers = dict(exc.headers)
    if exc.retryable:
        headers["Retry-After"] = "1"
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers or None,
    )


def _describe(error: dict) -> str:
    # ("body", "num_seats") -> "num_seats"
    location = ".".join(str(part) for part in error["loc"][1:]) or error["loc"][0]
    return f"{location}: {error['msg']}"


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    detail = "; ".join(_describe(error) for error in errors)
    request.state.error_code = InvalidRequest.code
    logger.info("request_rejected", code=InvalidRequest.code, detail=detail)
    return JSONResponse(
        status_code=InvalidRequest.status_code,
        content={
            "detail": detail,
            "code": InvalidRequest.code,
            "errors": jsonable_encoder(errors),
        },
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = STATUS_CODES.get(exc.status_code, "internal_error" if exc.status_code >= 500 else "http_error")
    request.state.error_code = code
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": code},
        headers=getattr(exc, "headers", None),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RailbookError, railbook_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
