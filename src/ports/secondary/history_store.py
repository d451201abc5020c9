from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping

from src.domain.workflow.entities.history_item import (
    HistoryItem,
    HistoryStats,
    SortBy,
    SortOrder,
    StorageUsage,
)
from src.domain.workflow.value_objects.execution_status import ExecutionStatus


class IHistoryStore(ABC):
    """
    Interface for the append/query/aggregate store of execution attempts.

    Items are kept most-recent-first and capped at a retention limit.
    """

    @abstractmethod
    def create(self, card_id: str, card_title: str, inputs: Mapping[str, Any]) -> str:
        pass

    @abstractmethod
    def get(self, history_id: str) -> HistoryItem | None:
        pass

    @abstractmethod
    def update(self, history_id: str, **patch: Any) -> bool:
        """Returns False when the id is unknown (a lost update, not an error)."""
        pass

    @abstractmethod
    def query(
        self,
        card_id: str | None = None,
        status: ExecutionStatus | None = None,
        sort_by: SortBy = SortBy.TIMESTAMP,
        sort_order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HistoryItem]:
        pass

    @abstractmethod
    def stats(self, card_id: str | None = None) -> HistoryStats:
        pass

    @abstractmethod
    def delete(self, history_id: str) -> bool:
        pass

    @abstractmethod
    def delete_many(self, history_ids: Iterable[str]) -> int:
        pass

    @abstractmethod
    def clear_all(self) -> None:
        pass

    @abstractmethod
    def export_all(self, card_id: str | None = None) -> str:
        pass

    @abstractmethod
    def import_all(self, serialized: str, merge: bool = True) -> bool:
        pass

    @abstractmethod
    def cleanup(self, retain: int | None = None) -> int:
        """Keeps only the most recent items. Returns the number dropped."""
        pass

    @abstractmethod
    def storage_usage(self) -> StorageUsage:
        pass
