import pytest

from src.domain.workflow.exceptions import (
    ErrorKind,
    PollTimeoutError,
    RemoteFailureError,
    RequestTimeoutError,
    TransportError,
)
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult, RemoteError
from src.domain.workflow.value_objects.execution_status import ExecutionStatus


def test_status_terminality():
    assert not ExecutionStatus.RUNNING.is_terminal
    assert ExecutionStatus.COMPLETED.is_terminal
    assert ExecutionStatus.FAILED.is_terminal
    assert ExecutionStatus.CANCELLED.is_terminal


def test_terminal_states_allow_no_transition():
    assert ExecutionStatus.RUNNING.can_transition_to(ExecutionStatus.COMPLETED)
    assert not ExecutionStatus.COMPLETED.can_transition_to(ExecutionStatus.RUNNING)
    assert not ExecutionStatus.FAILED.can_transition_to(ExecutionStatus.COMPLETED)


def test_output_and_error_are_mutually_exclusive():
    with pytest.raises(ValueError):
        ExecutionResult(
            id="e1",
            status=ExecutionStatus.COMPLETED,
            created_at=1,
            updated_at=2,
            output="done",
            error=RemoteError(code=1, message="boom"),
        )


def test_running_result_carries_neither_output_nor_error():
    with pytest.raises(ValueError):
        ExecutionResult(id="e1", status=ExecutionStatus.RUNNING, created_at=1, updated_at=1, output="x")
    with pytest.raises(ValueError):
        ExecutionResult(
            id="e1",
            status=ExecutionStatus.RUNNING,
            created_at=1,
            updated_at=1,
            error=RemoteError(code=1, message="x"),
        )


def test_from_api_drops_fields_contradicting_status():
    result = ExecutionResult.from_api(
        {
            "id": "exec-1",
            "workflow_id": "wf-1",
            "status": "Running",
            "output": "partial",
            "error": {"code": 5, "msg": "nope"},
            "created_at": 100,
            "updated_at": 101,
        }
    )

    assert result.status == ExecutionStatus.RUNNING
    assert result.output is None
    assert result.error is None
    assert result.workflow_id == "wf-1"


def test_from_api_failed_result_keeps_remote_error():
    result = ExecutionResult.from_api(
        {"id": 7, "status": "Failed", "error": {"code": 4001, "msg": "quota"}, "created_at": 1, "updated_at": 2}
    )

    assert result.id == "7"
    assert result.error == RemoteError(code=4001, message="quota")


def test_from_api_rejects_unknown_status():
    with pytest.raises(ValueError):
        ExecutionResult.from_api({"id": "e1", "status": "Paused"})


def test_failure_builds_synthetic_failed_result():
    result = ExecutionResult.failure("HTTP error: 500", now_seconds=1700000000, kind=ErrorKind.TRANSPORT_ERROR.value)

    assert result.status == ExecutionStatus.FAILED
    assert result.id == "failed-1700000000"
    assert result.error.code == -1
    assert result.error.kind == "TRANSPORT_ERROR"
    assert result.to_dict()["error"] == {"code": -1, "msg": "HTTP error: 500", "kind": "TRANSPORT_ERROR"}


def test_to_dict_and_from_dict_preserve_execution_time():
    result = ExecutionResult(
        id="e1",
        status=ExecutionStatus.COMPLETED,
        created_at=1,
        updated_at=3,
        output={"text": "done"},
        debug_url="https://debug/e1",
    ).with_execution_time(2.5)

    data = result.to_dict()
    assert data["execution_time"] == 2.5
    assert data["debug_url"] == "https://debug/e1"
    assert ExecutionResult.from_dict(data) == result


def test_request_repr_hides_credential():
    request = ExecutionRequest(workflow_id="wf-1", parameters={"input": "x"}, credential="secret-token")

    assert "secret-token" not in repr(request)
    assert request.to_payload() == {"workflow_id": "wf-1", "parameters": {"input": "x"}}


def test_error_kinds_and_retry_flags():
    assert RequestTimeoutError("https://api/x", 30).retryable
    assert TransportError("down").retryable
    assert not RemoteFailureError("bad", remote_code=4000).retryable

    timeout = PollTimeoutError("exec-1", 3)
    assert timeout.kind == ErrorKind.POLL_TIMEOUT
    assert not timeout.retryable
    assert timeout.error_code == "POLL_TIMEOUT"
    assert timeout.kind != RemoteFailureError("bad").kind
