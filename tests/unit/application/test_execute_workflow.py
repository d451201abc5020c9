import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.adapters.secondary.history.local_history_store import LocalHistoryStore
from src.adapters.secondary.storage.in_memory_storage import InMemoryKeyValueStorage
from src.application.execution.use_cases.execute_workflow import ExecuteWorkflowUseCase
from src.domain.workflow.exceptions import (
    ExecutionCancelledError,
    PollTimeoutError,
    RemoteFailureError,
    TransportError,
)
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.domain.workflow.value_objects.execution_status import ExecutionStatus


def running(execution_id="exec-1"):
    return ExecutionResult(id=execution_id, status=ExecutionStatus.RUNNING, created_at=1, updated_at=1)


def completed(execution_id="exec-1", output="done"):
    return ExecutionResult(id=execution_id, status=ExecutionStatus.COMPLETED, created_at=1, updated_at=2, output=output)


class FakeMonotonic:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self):
        return self.values.pop(0) if len(self.values) > 1 else self.values[0]


@pytest.fixture
def history():
    return LocalHistoryStore(InMemoryKeyValueStorage())


@pytest.fixture
def client():
    mock = AsyncMock()
    # ensure_completed is synchronous on the port
    mock.ensure_completed = MagicMock(side_effect=lambda result: result)
    return mock


@pytest.fixture
def request_():
    return ExecutionRequest(workflow_id="wf-1", parameters={"input": "x"}, credential="token")


@pytest.fixture
def use_case(client, history):
    return ExecuteWorkflowUseCase(
        client,
        history,
        monotonic=FakeMonotonic(10.0, 12.5),
        clock_seconds=lambda: 1_700_000_000,
    )


@pytest.mark.asyncio
async def test_execute_records_completed_result(use_case, client, history, request_):
    client.run.return_value = running()
    client.poll_until_terminal.return_value = completed()

    result = await use_case.execute("card-1", "Summarize", request_)

    assert result.output == "done"
    assert result.execution_time_seconds == 2.5
    [item] = history.query()
    assert item.card_id == "card-1"
    assert item.inputs == {"input": "x"}
    assert item.status == ExecutionStatus.COMPLETED
    assert item.execution_time_seconds == 2.5
    client.poll_until_terminal.assert_awaited_once()
    assert client.poll_until_terminal.call_args.kwargs["credential"] == "token"


@pytest.mark.asyncio
async def test_history_item_exists_before_run(use_case, client, history, request_):
    seen = {}

    async def run(request):
        seen["items"] = history.query()
        return completed()

    client.run.side_effect = run

    await use_case.execute("card-1", "t", request_)

    assert len(seen["items"]) == 1
    assert seen["items"][0].is_pending


@pytest.mark.asyncio
async def test_terminal_submission_skips_polling(use_case, client, request_):
    client.run.return_value = completed()

    result = await use_case.execute("card-1", "t", request_)

    assert result.status == ExecutionStatus.COMPLETED
    client.ensure_completed.assert_called_once()
    client.poll_until_terminal.assert_not_awaited()


@pytest.mark.asyncio
async def test_progress_callback_is_passed_to_polling(use_case, client, request_):
    client.run.return_value = running()
    client.poll_until_terminal.return_value = completed()
    on_progress = MagicMock()

    await use_case.execute("card-1", "t", request_, on_progress=on_progress)

    assert client.poll_until_terminal.call_args.kwargs["on_progress"] is on_progress


@pytest.mark.asyncio
async def test_transport_error_is_recorded_then_raised(use_case, client, history, request_):
    client.run.side_effect = TransportError("HTTP error: 500 Internal Server Error", status_code=500)

    with pytest.raises(TransportError):
        await use_case.execute("card-1", "t", request_)

    [item] = history.query()
    assert item.status == ExecutionStatus.FAILED
    assert item.result.error.message == "HTTP error: 500 Internal Server Error"
    assert item.result.error.kind == "TRANSPORT_ERROR"
    assert item.result.id == "failed-1700000000"
    assert item.execution_time_seconds == 2.5


@pytest.mark.asyncio
async def test_poll_timeout_is_distinguishable_from_remote_failure(use_case, client, history, request_):
    client.run.return_value = running()
    client.poll_until_terminal.side_effect = PollTimeoutError("exec-1", 60)

    with pytest.raises(PollTimeoutError):
        await use_case.execute("card-1", "t", request_)

    item = history.query()[0]
    assert item.result.error.kind == "POLL_TIMEOUT"
    assert item.result.id == "exec-1"


@pytest.mark.asyncio
async def test_remote_failure_keeps_remote_code(use_case, client, history, request_):
    client.run.return_value = running()
    client.poll_until_terminal.side_effect = RemoteFailureError("node crashed", remote_code=5001, execution_id="exec-1")

    with pytest.raises(RemoteFailureError):
        await use_case.execute("card-1", "t", request_)

    error = history.query()[0].result.error
    assert error.code == 5001
    assert error.kind == "REMOTE_FAILURE"


@pytest.mark.asyncio
async def test_remote_cancellation_is_recorded(use_case, client, history, request_):
    client.run.return_value = running()
    client.poll_until_terminal.side_effect = ExecutionCancelledError("exec-1")

    with pytest.raises(ExecutionCancelledError):
        await use_case.execute("card-1", "t", request_)

    assert history.query()[0].result.error.kind == "CANCELLED"


@pytest.mark.asyncio
async def test_task_cancellation_still_records_failure(use_case, client, history, request_):
    client.run.return_value = running()
    client.poll_until_terminal.side_effect = asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await use_case.execute("card-1", "t", request_)

    item = history.query()[0]
    assert not item.is_pending
    assert item.result.error.kind == "CANCELLED"


@pytest.mark.asyncio
async def test_unexpected_error_is_recorded_as_internal(use_case, client, history, request_):
    client.run.side_effect = RuntimeError("bug")

    with pytest.raises(RuntimeError):
        await use_case.execute("card-1", "t", request_)

    assert history.query()[0].result.error.kind == "INTERNAL"


@pytest.mark.asyncio
async def test_lost_update_is_not_fatal(client, request_):
    history = MagicMock()
    history.create.return_value = "h1"
    history.update.return_value = False
    client.run.return_value = completed()
    use_case = ExecuteWorkflowUseCase(client, history)

    result = await use_case.execute("card-1", "t", request_)

    assert result.status == ExecutionStatus.COMPLETED
    history.update.assert_called_once()


@pytest.mark.asyncio
async def test_execution_metrics_recorded(client, history, request_):
    metrics = MagicMock()
    client.run.return_value = completed()
    use_case = ExecuteWorkflowUseCase(client, history, metrics=metrics, monotonic=FakeMonotonic(0.0, 1.0))

    await use_case.execute("card-1", "t", request_)

    metrics.record_execution.assert_called_once_with("wf-1", "Completed", 1.0)
