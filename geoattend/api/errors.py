"""Translate protocol errors into HTTP responses.

Rejections keep their stable code and details in the body so the client can
tell the trainee exactly what to do.
"""
from fastapi import Request
from fastapi.responses import JSONResponse

from geoattend.core.errors import CheckinRejected, RejectionCode, StoreError, category_of, is_recoverable
from geoattend.core.logging_config import get_logger
from geoattend.schemas import ErrorDetail, ErrorResponse

logger = get_logger(__name__)

STATUS_BY_CODE = {
    RejectionCode.TRAINING_NOT_FOUND: 404,
    RejectionCode.NOT_ENROLLED: 403,
    RejectionCode.TOKEN_STALE: 409,
    RejectionCode.ALREADY_MARKED: 409,
    RejectionCode.DUPLICATE_ENTRY: 409,
    RejectionCode.STORE_ERROR: 503,
}


def status_for(code: RejectionCode) -> int:
    # Input, temporal, geofence and location problems
    return STATUS_BY_CODE.get(code, 400)


def error_body(code: RejectionCode, message: str, details=None) -> dict:
    return ErrorResponse(
        error=ErrorDetail(
            code=code.value,
            message=message,
            category=category_of(code).value,
            recoverable=is_recoverable(code),
            details=details or {},
        )
    ).model_dump()


async def checkin_rejected_handler(request: Request, exc: CheckinRejected) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc.code),
        content=error_body(exc.code, exc.message, exc.details),
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error("store_error", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
    return JSONResponse(
        status_code=503,
        content=error_body(RejectionCode.STORE_ERROR, "Temporary problem saving or loading data. Please try again."),
    )
