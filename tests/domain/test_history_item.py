import pytest

from src.domain.cache.entities.cache_entry import CacheEntry
from src.domain.workflow.entities.history_item import HistoryItem, HistoryStats
from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.domain.workflow.value_objects.execution_status import ExecutionStatus


@pytest.fixture
def pending_item():
    return HistoryItem(id="h1", card_id="card-1", card_title="Summarize", timestamp=1000, inputs={"input": "x"})


def test_pending_item_has_no_status(pending_item):
    assert pending_item.is_pending
    assert pending_item.status is None


def test_with_patch_returns_new_record(pending_item):
    result = ExecutionResult(
        id="e1", status=ExecutionStatus.COMPLETED, created_at=1, updated_at=2, output="done"
    )

    patched = pending_item.with_patch(result=result, execution_time_seconds=1.5)

    assert patched is not pending_item
    assert pending_item.result is None
    assert patched.status == ExecutionStatus.COMPLETED
    assert patched.execution_time_seconds == 1.5


def test_with_patch_rejects_identity_changes(pending_item):
    with pytest.raises(ValueError):
        pending_item.with_patch(id="other")
    with pytest.raises(ValueError):
        pending_item.with_patch(timestamp=5)


def test_inputs_are_copied_not_referenced(pending_item):
    params = {"nested": {"value": 1}}

    item = pending_item.with_patch(inputs=params)
    params["nested"]["value"] = 2

    assert item.inputs == {"nested": {"value": 1}}


def test_dict_uses_camel_case_keys(pending_item):
    data = pending_item.with_patch(execution_time_seconds=3.0).to_dict()

    assert data == {
        "id": "h1",
        "cardId": "card-1",
        "cardTitle": "Summarize",
        "inputs": {"input": "x"},
        "timestamp": 1000,
        "executionTime": 3.0,
    }
    assert HistoryItem.from_dict(data) == pending_item.with_patch(execution_time_seconds=3.0)


@pytest.mark.parametrize(
    "record",
    [
        {"cardId": "c", "timestamp": 1},
        {"id": "h", "timestamp": 1},
        {"id": "h", "cardId": "c"},
        "not-a-record",
    ],
)
def test_minimal_shape_rejects_incomplete_records(record):
    assert not HistoryItem.has_minimal_shape(record)


def test_stats_omit_average_when_unknown():
    assert "avgExecutionTime" not in HistoryStats(total=2, running=2).to_dict()
    assert HistoryStats(total=1, completed=1, avg_execution_time=2.0).to_dict()["avgExecutionTime"] == 2.0


def test_cache_entry_expires_at_boundary():
    entry = CacheEntry(key="k", value={"a": 1}, expires_at=2000)

    assert not entry.is_expired(1999)
    assert entry.is_expired(2000)
    assert entry.to_envelope() == {"data": {"a": 1}, "expiresAt": 2000, "version": "1.0.0"}
    assert CacheEntry.from_envelope("k", entry.to_envelope()) == entry
