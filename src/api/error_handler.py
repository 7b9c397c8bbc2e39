"""
API error handlers

Validation and state errors return their specific reason. Retryable and
dependency errors return a generic message without storage details.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from src.utils.exceptions import (
    AllocationConflictError,
    DuplicateAcknowledgementError,
    DuplicateNoticeError,
    ExternalDependencyError,
    InvalidStateError,
    NoEligibleLawyerError,
    NotFoundError,
    OperationCancelledError,
    ValidationError,
)
from src.utils.response import error_response
from src.utils.logger import get_logger

logger = get_logger(__name__)


async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Request body/query validation error handler"""
    errors = exc.errors()
    error_details = {
        "field": errors[0].get("loc")[-1] if errors else None,
        "message": errors[0].get("msg") if errors else "validation error"
    }
    
    return JSONResponse(
        status_code=422,
        content=error_response(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            details=error_details
        )
    )


async def validation_error_handler(request: Request, exc: ValidationError):
    """Domain validation error handler (bad prefix, date range, missing field)"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response(
            code=exc.error_code,
            message=str(exc),
            details={"field": exc.field} if exc.field else None
        )
    )


async def not_found_handler(request: Request, exc: NotFoundError):
    """Not found error handler"""
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=error_response(
            code=exc.error_code,
            message=str(exc),
            details={"entity": exc.entity}
        )
    )


async def conflict_handler(request: Request, exc: Exception):
    """Duplicate notice / duplicate acknowledgement / invalid transition handler"""
    logger.info(f"Request rejected: {request.method} {request.url.path} - {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=error_response(
            code=exc.error_code,
            message=str(exc)
        )
    )


async def retryable_error_handler(request: Request, exc: Exception):
    """Allocation conflict / dependency timeout / cancellation handler"""
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        headers={"Retry-After": "1"},
        content=error_response(
            code=exc.error_code,
            message="The service is temporarily unavailable. Please retry.",
            details={"retryable": True}
        )
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Catch-all handler"""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response(
            code="INTERNAL_SERVER_ERROR",
            message="Internal server error"
        )
    )


EXCEPTION_HANDLERS = [
    (RequestValidationError, request_validation_handler),
    (ValidationError, validation_error_handler),
    (NotFoundError, not_found_handler),
    (DuplicateNoticeError, conflict_handler),
    (DuplicateAcknowledgementError, conflict_handler),
    (InvalidStateError, conflict_handler),
    (NoEligibleLawyerError, conflict_handler),
    (AllocationConflictError, retryable_error_handler),
    (ExternalDependencyError, retryable_error_handler),
    (OperationCancelledError, retryable_error_handler),
    (Exception, general_exception_handler),
]
