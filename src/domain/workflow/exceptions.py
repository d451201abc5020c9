from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """
    Tags every execution error so callers can pick a retry policy.

    POLL_TIMEOUT is an ambiguous outcome (the job may still finish remotely),
    REMOTE_FAILURE is a definitive one; they must never be conflated.
    """

    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    REQUEST_TIMEOUT = "REQUEST_TIMEOUT"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    REMOTE_FAILURE = "REMOTE_FAILURE"
    POLL_TIMEOUT = "POLL_TIMEOUT"
    CANCELLED = "CANCELLED"
    INTERNAL = "INTERNAL"


class WorkflowException(Exception):
    def __init__(
        self,
        message: str,
        error_code: str = "WORKFLOW_ERROR",
        context: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.context = context or {}
        super().__init__(self.message)


class WorkflowExecutionError(WorkflowException):
    """Base class for failures raised while submitting or polling a remote run."""

    kind: ErrorKind = ErrorKind.INTERNAL
    retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, error_code=self.kind.value, context=context)


class InvalidArgumentError(WorkflowExecutionError):
    kind = ErrorKind.INVALID_ARGUMENT

    def __init__(self, field_name: str, details: str):
        self.field_name = field_name
        super().__init__(
            message=f"Invalid argument '{field_name}': {details}",
            context={"field": field_name, "details": details},
        )


class UnauthenticatedError(WorkflowExecutionError):
    kind = ErrorKind.UNAUTHENTICATED

    def __init__(self, message: str = "No credential available, please sign in first"):
        super().__init__(message=message)


class RequestTimeoutError(WorkflowExecutionError):
    kind = ErrorKind.REQUEST_TIMEOUT
    retryable = True

    def __init__(self, url: str, timeout_seconds: float):
        self.url = url
        self.timeout_seconds = timeout_seconds
        super().__init__(
            message=f"Request to {url} timed out after {timeout_seconds}s",
            context={"url": url, "timeout_seconds": timeout_seconds},
        )


class TransportError(WorkflowExecutionError):
    kind = ErrorKind.TRANSPORT_ERROR
    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None, url: Optional[str] = None):
        self.status_code = status_code
        self.url = url
        super().__init__(
            message=message,
            context={"status_code": status_code, "url": url},
        )


class RemoteFailureError(WorkflowExecutionError):
    """The remote side reported a business error (code != 0) or a Failed run."""

    kind = ErrorKind.REMOTE_FAILURE

    def __init__(
        self,
        message: str,
        remote_code: int = 0,
        execution_id: Optional[str] = None,
    ):
        self.remote_code = remote_code
        self.execution_id = execution_id
        super().__init__(
            message=message,
            context={"remote_code": remote_code, "execution_id": execution_id},
        )


class PollTimeoutError(WorkflowExecutionError):
    kind = ErrorKind.POLL_TIMEOUT

    def __init__(self, execution_id: str, attempts: int):
        self.execution_id = execution_id
        self.attempts = attempts
        super().__init__(
            message=f"Execution '{execution_id}' still running after {attempts} polls",
            context={"execution_id": execution_id, "attempts": attempts},
        )


class ExecutionCancelledError(WorkflowExecutionError):
    kind = ErrorKind.CANCELLED

    def __init__(self, execution_id: Optional[str] = None, message: str = "Workflow execution was cancelled"):
        self.execution_id = execution_id
        super().__init__(message=message, context={"execution_id": execution_id})


class HistoryItemNotFoundError(WorkflowException):
    def __init__(self, history_id: str):
        self.history_id = history_id
        super().__init__(
            message=f"History item '{history_id}' not found",
            error_code="HISTORY_ITEM_NOT_FOUND",
            context={"history_id": history_id}
        )
