import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.domain.workflow.value_objects.execution_status import ExecutionStatus


class SortBy(str, Enum):
    TIMESTAMP = "timestamp"
    EXECUTION_TIME = "executionTime"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class HistoryItem:
    """
    Durable local record of one execution attempt.

    Created without a result the moment a run starts and patched once the run
    reaches a terminal state. Records are immutable; `with_patch` returns a
    new record so references handed out earlier never change underneath
    their holders.
    """

    id: str
    card_id: str
    card_title: str
    timestamp: int
    inputs: dict[str, Any] = field(default_factory=dict)
    result: ExecutionResult | None = None
    execution_time_seconds: float | None = None

    @property
    def is_pending(self) -> bool:
        return self.result is None

    @property
    def status(self) -> ExecutionStatus | None:
        return self.result.status if self.result else None

    def with_patch(self, **changes: Any) -> "HistoryItem":
        if "id" in changes or "timestamp" in changes:
            raise ValueError("id and timestamp of a history item are immutable")
        if "inputs" in changes:
            changes["inputs"] = copy.deepcopy(dict(changes["inputs"]))
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "cardId": self.card_id,
            "cardTitle": self.card_title,
            "inputs": copy.deepcopy(self.inputs),
            "timestamp": self.timestamp,
        }
        if self.result is not None:
            data["result"] = self.result.to_dict()
        if self.execution_time_seconds is not None:
            data["executionTime"] = self.execution_time_seconds
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryItem":
        result = None
        if isinstance(data.get("result"), dict):
            result = ExecutionResult.from_dict(data["result"])
        execution_time = data.get("executionTime")
        return cls(
            id=str(data["id"]),
            card_id=str(data["cardId"]),
            card_title=str(data.get("cardTitle") or ""),
            timestamp=int(data["timestamp"]),
            inputs=copy.deepcopy(dict(data.get("inputs") or {})),
            result=result,
            execution_time_seconds=float(execution_time) if execution_time is not None else None,
        )

    @staticmethod
    def has_minimal_shape(data: Any) -> bool:
        """Import accepts only records carrying an id, a card id and a timestamp."""
        return (
            isinstance(data, dict)
            and bool(data.get("id"))
            and bool(data.get("cardId"))
            and bool(data.get("timestamp"))
        )


@dataclass(frozen=True)
class HistoryStats:
    total: int = 0
    completed: int = 0
    failed: int = 0
    running: int = 0
    cancelled: int = 0
    avg_execution_time: float | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "running": self.running,
            "cancelled": self.cancelled,
        }
        if self.avg_execution_time is not None:
            data["avgExecutionTime"] = self.avg_execution_time
        return data


@dataclass(frozen=True)
class StorageUsage:
    used: int
    available: int
    percentage: float
