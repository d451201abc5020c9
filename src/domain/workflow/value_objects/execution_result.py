from dataclasses import dataclass, replace
from typing import Any

from src.domain.workflow.value_objects.execution_status import ExecutionStatus


@dataclass(frozen=True)
class RemoteError:
    code: int
    message: str
    kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"code": self.code, "msg": self.message}
        if self.kind:
            data["kind"] = self.kind
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RemoteError":
        return cls(
            code=int(data.get("code") or 0),
            message=str(data.get("msg") or data.get("message") or ""),
            kind=data.get("kind"),
        )


@dataclass(frozen=True)
class ExecutionResult:
    """
    Snapshot of a remote workflow run.

    `output` is only carried by COMPLETED results and `error` only by FAILED
    ones. `execution_time_seconds` is measured locally by the orchestrator and
    is never taken from the remote payload.
    """

    id: str
    status: ExecutionStatus
    created_at: int
    updated_at: int
    workflow_id: str | None = None
    output: Any = None
    error: RemoteError | None = None
    debug_url: str | None = None
    execution_time_seconds: float | None = None

    def __post_init__(self):
        if self.output is not None and self.error is not None:
            raise ValueError("output and error are mutually exclusive")
        if self.output is not None and self.status != ExecutionStatus.COMPLETED:
            raise ValueError(f"output is only allowed on Completed results, got {self.status.value}")
        if self.error is not None and self.status != ExecutionStatus.FAILED:
            raise ValueError(f"error is only allowed on Failed results, got {self.status.value}")

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def with_execution_time(self, seconds: float) -> "ExecutionResult":
        return replace(self, execution_time_seconds=seconds)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ExecutionResult":
        """
        Builds a result from the `data` member of a run/status response.

        Fields that contradict the reported status are dropped rather than
        rejected, since the remote side is not under our control.
        """
        status = ExecutionStatus(data["status"])
        output = data.get("output") if status == ExecutionStatus.COMPLETED else None
        error = None
        if status == ExecutionStatus.FAILED and isinstance(data.get("error"), dict):
            error = RemoteError.from_dict(data["error"])
        return cls(
            id=str(data["id"]),
            status=status,
            workflow_id=data.get("workflow_id"),
            created_at=int(data.get("created_at") or 0),
            updated_at=int(data.get("updated_at") or 0),
            output=output,
            error=error,
            debug_url=data.get("debug_url"),
        )

    @classmethod
    def failure(
        cls,
        message: str,
        *,
        now_seconds: int,
        code: int = -1,
        kind: str | None = None,
        execution_id: str | None = None,
    ) -> "ExecutionResult":
        """Synthetic FAILED result recorded when a run ends in a local or remote error."""
        return cls(
            id=execution_id or f"failed-{now_seconds}",
            status=ExecutionStatus.FAILED,
            created_at=now_seconds,
            updated_at=now_seconds,
            error=RemoteError(code=code, message=message, kind=kind),
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.workflow_id is not None:
            data["workflow_id"] = self.workflow_id
        if self.output is not None:
            data["output"] = self.output
        if self.error is not None:
            data["error"] = self.error.to_dict()
        if self.debug_url is not None:
            data["debug_url"] = self.debug_url
        if self.execution_time_seconds is not None:
            data["execution_time"] = self.execution_time_seconds
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ExecutionResult":
        result = cls.from_api(data)
        if data.get("execution_time") is not None:
            result = result.with_execution_time(float(data["execution_time"]))
        return result
