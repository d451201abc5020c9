import itertools
import json
from typing import Any, Iterable, Mapping
from uuid import uuid4

from src.domain.storage.exceptions import StorageError, StorageQuotaExceededError
from src.domain.workflow.entities.history_item import (
    HistoryItem,
    HistoryStats,
    SortBy,
    SortOrder,
    StorageUsage,
)
from src.domain.workflow.value_objects.execution_status import ExecutionStatus
from src.ports.secondary.history_store import IHistoryStore
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.ports.secondary.metrics import IMetrics
from src.shared.clock import Clock, now_ms
from src.shared.logger import get_logger

logger = get_logger(__name__)

# Used for usage reporting when the storage backend has no hard quota.
ESTIMATED_CAPACITY_BYTES = 5 * 1024 * 1024


class LocalHistoryStore(IHistoryStore):
    """
    Execution history kept as one JSON array under a fixed storage key.

    Storage order is most-recent-first. Every write re-sorts by timestamp and
    drops items beyond `max_items`, so retention is enforced on write and
    never by a background sweep.

    Quota handling: a write rejected for lack of space trims the list to
    `cleanup_retain` items and is retried once; a second rejection is raised.
    """

    def __init__(
        self,
        storage: IKeyValueStorage,
        storage_key: str = "workflow_history",
        max_items: int = 1000,
        cleanup_retain: int = 500,
        clock: Clock = now_ms,
        metrics: IMetrics | None = None,
    ):
        if max_items <= 0:
            raise ValueError("max_items must be positive")
        self._storage = storage
        self._storage_key = storage_key
        self._max_items = max_items
        self._cleanup_retain = min(cleanup_retain, max_items)
        self._clock = clock
        self._metrics = metrics
        self._sequence = itertools.count(1)

    # --- persistence -----------------------------------------------------

    def _load(self, for_write: bool = False) -> list[HistoryItem]:
        try:
            raw = self._storage.get_item(self._storage_key)
        except StorageError as e:
            logger.error("history_read_failed", error=str(e))
            if for_write:
                # rewriting from an empty read would wipe the stored history
                raise
            return []
        if not raw:
            return []
        try:
            records = json.loads(raw)
        except ValueError as e:
            logger.error("history_corrupt", error=str(e))
            return []
        if not isinstance(records, list):
            logger.error("history_corrupt", error="stored history is not a list")
            return []

        items = []
        for record in records:
            try:
                items.append(HistoryItem.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("history_record_skipped", error=str(e))
        return items

    def _save(self, items: list[HistoryItem]) -> None:
        # sorted() is stable: equal timestamps keep most-recent-first order
        ordered = sorted(items, key=lambda item: item.timestamp, reverse=True)
        retained = ordered[: self._max_items]
        if len(ordered) > len(retained):
            logger.info("history_retention_trimmed", dropped=len(ordered) - len(retained))
            if self._metrics:
                self._metrics.record_history_cleanup("retention")

        try:
            self._write(retained)
        except StorageQuotaExceededError as e:
            logger.warning(
                "history_storage_full",
                items=len(retained),
                retain=self._cleanup_retain,
                error=str(e),
            )
            if self._metrics:
                self._metrics.record_history_cleanup("quota")
            self._write(retained[: self._cleanup_retain])

    def _write(self, items: list[HistoryItem]) -> None:
        payload = json.dumps([item.to_dict() for item in items], ensure_ascii=False)
        self._storage.set_item(self._storage_key, payload)

    def _generate_id(self, timestamp: int) -> str:
        # Fixed-width prefix keeps ids sortable in creation order.
        return f"{timestamp:013d}-{next(self._sequence):06d}-{uuid4().hex[:8]}"

    # --- writes ----------------------------------------------------------

    def create(self, card_id: str, card_title: str, inputs: Mapping[str, Any]) -> str:
        timestamp = self._clock()
        item = HistoryItem(
            id=self._generate_id(timestamp),
            card_id=card_id,
            card_title=card_title,
            timestamp=timestamp,
        ).with_patch(inputs=inputs or {})

        items = self._load(for_write=True)
        items.insert(0, item)
        self._save(items)

        logger.debug("history_item_created", history_id=item.id, card_id=card_id)
        return item.id

    def update(self, history_id: str, **patch: Any) -> bool:
        items = self._load(for_write=True)
        for index, item in enumerate(items):
            if item.id == history_id:
                new_result = patch.get("result")
                if item.status and new_result and not item.status.can_transition_to(new_result.status):
                    logger.warning(
                        "history_transition_rejected",
                        history_id=history_id,
                        current=item.status.value,
                        attempted=new_result.status.value,
                    )
                    return False
                items[index] = item.with_patch(**patch)
                self._save(items)
                return True
        logger.warning("history_item_missing", history_id=history_id)
        return False

    def delete(self, history_id: str) -> bool:
        items = self._load(for_write=True)
        remaining = [item for item in items if item.id != history_id]
        if len(remaining) == len(items):
            return False
        self._save(remaining)
        return True

    def delete_many(self, history_ids: Iterable[str]) -> int:
        ids = set(history_ids)
        items = self._load(for_write=True)
        remaining = [item for item in items if item.id not in ids]
        deleted = len(items) - len(remaining)
        if deleted:
            self._save(remaining)
        return deleted

    def clear_all(self) -> None:
        self._storage.remove_item(self._storage_key)
        logger.info("history_cleared")

    def cleanup(self, retain: int | None = None) -> int:
        keep = self._cleanup_retain if retain is None else retain
        items = self._load(for_write=True)
        ordered = sorted(items, key=lambda item: item.timestamp, reverse=True)
        self._save(ordered[:keep])
        dropped = max(len(ordered) - keep, 0)
        if dropped and self._metrics:
            self._metrics.record_history_cleanup("manual")
        return dropped

    # --- reads -----------------------------------------------------------

    def get(self, history_id: str) -> HistoryItem | None:
        return next((item for item in self._load() if item.id == history_id), None)

    def query(
        self,
        card_id: str | None = None,
        status: ExecutionStatus | None = None,
        sort_by: SortBy = SortBy.TIMESTAMP,
        sort_order: SortOrder = SortOrder.DESC,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[HistoryItem]:
        items = self._load()

        if card_id:
            items = [item for item in items if item.card_id == card_id]
        if status:
            items = [item for item in items if item.status == status]

        if sort_by == SortBy.EXECUTION_TIME:
            sort_key = lambda item: item.execution_time_seconds or 0
        else:
            sort_key = lambda item: item.timestamp
        items.sort(key=sort_key, reverse=sort_order == SortOrder.DESC)

        offset = max(offset, 0)
        if limit:
            return items[offset: offset + limit]
        return items[offset:]

    def stats(self, card_id: str | None = None) -> HistoryStats:
        counts = {status: 0 for status in ExecutionStatus}
        total = 0
        timed_total = 0.0
        timed_count = 0

        for item in self._load():
            if card_id and item.card_id != card_id:
                continue
            total += 1
            if item.status is not None:
                counts[item.status] += 1
            if item.execution_time_seconds is not None:
                timed_total += item.execution_time_seconds
                timed_count += 1

        return HistoryStats(
            total=total,
            completed=counts[ExecutionStatus.COMPLETED],
            failed=counts[ExecutionStatus.FAILED],
            running=counts[ExecutionStatus.RUNNING],
            cancelled=counts[ExecutionStatus.CANCELLED],
            avg_execution_time=timed_total / timed_count if timed_count else None,
        )

    def storage_usage(self) -> StorageUsage:
        used = self._storage.size_bytes(self._storage_key)
        capacity = self._storage.quota_bytes or ESTIMATED_CAPACITY_BYTES
        return StorageUsage(
            used=used,
            available=max(0, capacity - used),
            percentage=used / capacity * 100,
        )

    # --- export / import -------------------------------------------------

    def export_all(self, card_id: str | None = None) -> str:
        items = self._load()
        if card_id:
            items = [item for item in items if item.card_id == card_id]
        return json.dumps([item.to_dict() for item in items], indent=2, ensure_ascii=False)

    def import_all(self, serialized: str, merge: bool = True) -> bool:
        try:
            records = json.loads(serialized)
        except (TypeError, ValueError) as e:
            logger.error("history_import_failed", error=str(e))
            return False
        if not isinstance(records, list):
            logger.error("history_import_failed", error="import data must be a JSON array")
            return False

        imported = []
        for record in records:
            if not HistoryItem.has_minimal_shape(record):
                continue
            try:
                imported.append(HistoryItem.from_dict(record))
            except (KeyError, TypeError, ValueError):
                continue
        dropped = len(records) - len(imported)

        if merge:
            existing = self._load(for_write=True)
            known_ids = {item.id for item in existing}
            fresh = []
            for item in imported:
                if item.id not in known_ids:
                    known_ids.add(item.id)
                    fresh.append(item)
            self._save(existing + fresh)
            added = len(fresh)
        else:
            self._save(imported)
            added = len(imported)

        logger.info("history_imported", merge=merge, added=added, dropped=dropped)
        return True
