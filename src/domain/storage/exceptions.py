from typing import Optional

from src.domain.workflow.exceptions import WorkflowException


class StorageError(WorkflowException):
    def __init__(self, message: str, key: Optional[str] = None, error_code: str = "STORAGE_ERROR"):
        self.key = key
        super().__init__(message=message, error_code=error_code, context={"key": key})


class StorageQuotaExceededError(StorageError):
    def __init__(self, key: str, required_bytes: int, quota_bytes: int):
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes
        super().__init__(
            message=f"Writing '{key}' needs {required_bytes} bytes, quota is {quota_bytes}",
            key=key,
            error_code="STORAGE_QUOTA_EXCEEDED",
        )
