from fastapi import Request, status
from fastapi.responses import JSONResponse

from src.domain.workflow.exceptions import ErrorKind, WorkflowException
from src.shared.logger import get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR_CODE = {
    ErrorKind.INVALID_ARGUMENT.value: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHENTICATED.value: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.REQUEST_TIMEOUT.value: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.POLL_TIMEOUT.value: status.HTTP_504_GATEWAY_TIMEOUT,
    ErrorKind.TRANSPORT_ERROR.value: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.REMOTE_FAILURE.value: status.HTTP_502_BAD_GATEWAY,
    ErrorKind.CANCELLED.value: status.HTTP_409_CONFLICT,
    "HISTORY_ITEM_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "STORAGE_QUOTA_EXCEEDED": status.HTTP_507_INSUFFICIENT_STORAGE,
    "STORAGE_ERROR": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def status_for(exc: WorkflowException) -> int:
    return _STATUS_BY_ERROR_CODE.get(exc.error_code, status.HTTP_400_BAD_REQUEST)


async def workflow_exception_handler(request: Request, exc: WorkflowException):
    """
    Global exception handler for WorkflowException and its subclasses.
    Converts domain exceptions to structured JSON responses.
    """
    logger.error(
        "workflow_error",
        error_code=exc.error_code,
        message=exc.message,
        context=exc.context,
        path=request.url.path
    )

    return JSONResponse(
        status_code=status_for(exc),
        content={
            "error": {
                "message": exc.message,
                "error_code": exc.error_code,
                "retryable": getattr(exc, "retryable", False),
                "context": exc.context
            }
        }
    )

async def general_exception_handler(request: Request, exc: Exception):
    """
    Fallback handler for all unhandled exceptions.
    """
    logger.exception("unhandled_exception", path=request.url.path)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": "Internal processing error",
                "error_code": "INTERNAL_SERVER_ERROR",
                "context": {"type": str(type(exc).__name__)}
            }
        }
    )
