import asyncio
import time
from typing import Callable

from src.domain.storage.exceptions import StorageError
from src.domain.workflow.exceptions import ErrorKind, RemoteFailureError, WorkflowExecutionError
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.ports.secondary.history_store import IHistoryStore
from src.ports.secondary.metrics import IMetrics
from src.ports.secondary.workflow_client import IWorkflowClient, ProgressCallback
from src.shared.clock import now_seconds
from src.shared.logger import bind_context, get_logger, unbind_context

logger = get_logger(__name__)


class ExecuteWorkflowUseCase:
    """
    Runs one workflow and remembers the attempt.

    Ordering per call:
    1. A pending history item is created before anything goes over the wire.
    2. The run is submitted and, unless it is already terminal, polled.
    3. The item is updated with the terminal result and the locally measured
       wall-clock duration.

    Any failure (including task cancellation) is written as a synthetic
    FAILED result before the error is re-raised, so no item is ever left
    pending by this use case.
    """

    def __init__(
        self,
        workflow_client: IWorkflowClient,
        history_store: IHistoryStore,
        metrics: IMetrics | None = None,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
        monotonic: Callable[[], float] = time.monotonic,
        clock_seconds: Callable[[], int] = now_seconds,
    ):
        self._client = workflow_client
        self._history = history_store
        self._metrics = metrics
        self._max_attempts = max_attempts
        self._interval_ms = interval_ms
        self._monotonic = monotonic
        self._clock_seconds = clock_seconds

    async def execute(
        self,
        card_id: str,
        card_title: str,
        request: ExecutionRequest,
        on_progress: ProgressCallback | None = None,
    ) -> ExecutionResult:
        history_id = self._history.create(card_id, card_title, request.parameters or {})
        bind_context({"history_id": history_id, "workflow_id": request.workflow_id})
        started = self._monotonic()
        execution_id: str | None = None

        try:
            logger.info("workflow_execution_started", card_id=card_id)
            initial = await self._client.run(request)
            execution_id = initial.id

            if initial.is_terminal:
                result = self._client.ensure_completed(initial)
            else:
                result = await self._client.poll_until_terminal(
                    initial.id,
                    on_progress=on_progress,
                    max_attempts=self._max_attempts,
                    interval_ms=self._interval_ms,
                    credential=request.credential,
                )

            duration = self._elapsed(started)
            result = result.with_execution_time(duration)
            self._record(history_id, result, duration)
            self._observe(request.workflow_id, result.status.value, duration)
            logger.info("workflow_execution_completed", execution_id=result.id, duration=duration)
            return result

        except (Exception, asyncio.CancelledError) as e:
            duration = self._elapsed(started)
            failure = self._failure_from(e, execution_id).with_execution_time(duration)
            try:
                self._record(history_id, failure, duration)
            except StorageError as storage_error:
                logger.error("history_failure_record_failed", error=str(storage_error))
            self._observe(request.workflow_id, failure.status.value, duration)
            logger.warning(
                "workflow_execution_failed",
                error_kind=failure.error.kind,
                error=failure.error.message,
                duration=duration,
            )
            raise
        finally:
            unbind_context("history_id", "workflow_id")

    def _elapsed(self, started: float) -> float:
        return round(self._monotonic() - started, 3)

    def _record(self, history_id: str, result: ExecutionResult, duration: float) -> None:
        if not self._history.update(history_id, result=result, execution_time_seconds=duration):
            # The item was deleted or evicted while the run was in flight.
            logger.warning("history_update_lost", history_id=history_id)

    def _observe(self, workflow_id: str, status: str, duration: float) -> None:
        if self._metrics:
            self._metrics.record_execution(workflow_id or "unknown", status, duration)

    def _failure_from(self, error: BaseException, execution_id: str | None) -> ExecutionResult:
        if isinstance(error, asyncio.CancelledError):
            kind, code, message = ErrorKind.CANCELLED, -1, "Execution task was cancelled"
        elif isinstance(error, WorkflowExecutionError):
            kind, code, message = error.kind, -1, error.message
            if isinstance(error, RemoteFailureError):
                code = error.remote_code
            execution_id = getattr(error, "execution_id", None) or execution_id
        else:
            kind, code, message = ErrorKind.INTERNAL, -1, str(error) or type(error).__name__

        return ExecutionResult.failure(
            message or "Workflow execution failed",
            now_seconds=self._clock_seconds(),
            code=code,
            kind=kind.value,
            execution_id=execution_id,
        )
