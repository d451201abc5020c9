from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Union

from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult

ProgressCallback = Callable[[ExecutionResult], Union[None, Awaitable[Any]]]


class IWorkflowClient(ABC):
    """
    Interface for the remote workflow engine.

    The client holds no persistent state: its only state is the in-flight
    request. All failures are raised as WorkflowExecutionError subclasses.
    """

    @abstractmethod
    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        """Submits a run. May already return a terminal result for fast jobs."""
        pass

    @abstractmethod
    async def poll(self, execution_id: str, credential: str | None = None) -> ExecutionResult:
        """One status check."""
        pass

    @abstractmethod
    async def poll_until_terminal(
        self,
        execution_id: str,
        on_progress: ProgressCallback | None = None,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
        credential: str | None = None,
    ) -> ExecutionResult:
        """Polls at a constant interval until COMPLETED, or raises."""
        pass

    @abstractmethod
    def ensure_completed(self, result: ExecutionResult) -> ExecutionResult:
        """Returns a COMPLETED result unchanged, raises for FAILED/CANCELLED."""
        pass
