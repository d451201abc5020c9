import asyncio
import inspect
from typing import Any, Awaitable, Callable

import httpx

from src.domain.workflow.exceptions import (
    ExecutionCancelledError,
    InvalidArgumentError,
    PollTimeoutError,
    RemoteFailureError,
    RequestTimeoutError,
    TransportError,
    UnauthenticatedError,
)
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.domain.workflow.value_objects.execution_result import ExecutionResult
from src.domain.workflow.value_objects.execution_status import ExecutionStatus
from src.ports.secondary.credential_provider import ICredentialProvider
from src.ports.secondary.metrics import IMetrics
from src.ports.secondary.workflow_client import IWorkflowClient, ProgressCallback
from src.shared.logger import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_ATTEMPTS = 60
DEFAULT_INTERVAL_MS = 2000

_DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


class HttpWorkflowClient(IWorkflowClient):
    """
    Submits workflow runs to the remote API and polls them to a terminal state.

    Wire contract:
        POST {base_url}/workflow/run        -> {code, msg, data}
        GET  {base_url}/workflow/run/{id}   -> {code, msg, data (+ output)}

    `code != 0` is a business failure regardless of the HTTP status. Each
    request is bounded by its own deadline; a timeout is raised immediately
    and never reported as "still running".
    """

    def __init__(
        self,
        base_url: str,
        credential_provider: ICredentialProvider | None = None,
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval_ms: int = DEFAULT_INTERVAL_MS,
        bot_id: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        metrics: IMetrics | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._credentials = credential_provider
        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._interval_ms = interval_ms
        self._bot_id = bot_id
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds))
        self._sleep = sleep
        self._metrics = metrics

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def __aenter__(self) -> "HttpWorkflowClient":
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.aclose()

    def _resolve_credential(self, credential: str | None) -> str:
        token = credential or (self._credentials.get_token() if self._credentials else None)
        if not token:
            raise UnauthenticatedError()
        return token

    async def run(self, request: ExecutionRequest) -> ExecutionResult:
        if not request.workflow_id:
            raise InvalidArgumentError("workflow_id", "must not be empty")
        if request.parameters is None:
            raise InvalidArgumentError("parameters", "must not be null")
        token = self._resolve_credential(request.credential)

        payload = request.to_payload()
        if self._bot_id and "bot_id" not in payload:
            payload["bot_id"] = self._bot_id

        logger.info(
            "workflow_run_submitting",
            workflow_id=request.workflow_id,
            parameter_keys=sorted(payload["parameters"]),
        )
        result = await self._request("POST", "/workflow/run", token, json=payload)
        logger.info("workflow_run_submitted", execution_id=result.id, status=result.status.value)
        return result

    async def poll(self, execution_id: str, credential: str | None = None) -> ExecutionResult:
        if not execution_id:
            raise InvalidArgumentError("execution_id", "must not be empty")
        token = self._resolve_credential(credential)
        result = await self._request("GET", f"/workflow/run/{execution_id}", token)
        if self._metrics:
            self._metrics.record_poll_attempt(result.status.value)
        return result

    async def poll_until_terminal(
        self,
        execution_id: str,
        on_progress: ProgressCallback | None = None,
        max_attempts: int | None = None,
        interval_ms: int | None = None,
        credential: str | None = None,
    ) -> ExecutionResult:
        """
        Polls at a constant interval until the run leaves RUNNING.

        Outcomes:
        - COMPLETED: returned.
        - FAILED: RemoteFailureError carrying the remote error code/message.
        - CANCELLED: ExecutionCancelledError.
        - Still RUNNING after `max_attempts` polls: PollTimeoutError.
        Transport and request-timeout errors from a single poll propagate as-is.
        """
        attempts = self._max_attempts if max_attempts is None else max_attempts
        interval = self._interval_ms if interval_ms is None else interval_ms
        if attempts < 1:
            raise InvalidArgumentError("max_attempts", "must be at least 1")
        if interval < 0:
            raise InvalidArgumentError("interval_ms", "cannot be negative")

        for attempt in range(1, attempts + 1):
            result = await self.poll(execution_id, credential=credential)
            logger.debug(
                "workflow_poll",
                execution_id=execution_id,
                attempt=attempt,
                max_attempts=attempts,
                status=result.status.value,
            )

            if result.is_terminal:
                return self.ensure_completed(result)

            if on_progress is not None:
                outcome = on_progress(result)
                if inspect.isawaitable(outcome):
                    await outcome

            if attempt < attempts:
                await self._sleep(interval / 1000)

        logger.warning("workflow_poll_exhausted", execution_id=execution_id, attempts=attempts)
        raise PollTimeoutError(execution_id, attempts)

    def ensure_completed(self, result: ExecutionResult) -> ExecutionResult:
        if result.status == ExecutionStatus.COMPLETED:
            return result
        if result.status == ExecutionStatus.FAILED:
            error = result.error
            raise RemoteFailureError(
                message=error.message if error and error.message else "Workflow execution failed",
                remote_code=error.code if error else 0,
                execution_id=result.id,
            )
        if result.status == ExecutionStatus.CANCELLED:
            raise ExecutionCancelledError(execution_id=result.id)
        return result

    async def _request(self, method: str, path: str, token: str, **kwargs: Any) -> ExecutionResult:
        url = f"{self._base_url}{path}"
        headers = {**_DEFAULT_HEADERS, "Authorization": f"Bearer {token}"}

        try:
            response = await asyncio.wait_for(
                self._http.request(method, url, headers=headers, **kwargs),
                timeout=self._timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            logger.warning("workflow_request_timeout", method=method, url=url)
            raise RequestTimeoutError(url, self._timeout_seconds) from e
        except httpx.HTTPError as e:
            logger.warning("workflow_request_failed", method=method, url=url, error=str(e))
            raise TransportError(f"Network request failed: {e}", url=url) from e

        return self._parse_response(response, url)

    def _parse_response(self, response: httpx.Response, url: str) -> ExecutionResult:
        if response.status_code in (401, 403):
            raise UnauthenticatedError(f"Credential rejected by remote API (HTTP {response.status_code})")
        if not response.is_success:
            raise TransportError(
                f"HTTP error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("Response body is not valid JSON", status_code=response.status_code, url=url) from e

        if not isinstance(body, dict):
            raise TransportError("Response body is not a JSON object", status_code=response.status_code, url=url)

        code = body.get("code", 0)
        if code != 0:
            raise RemoteFailureError(
                message=body.get("msg") or "Workflow request failed",
                remote_code=code,
            )

        data = body.get("data")
        if not isinstance(data, dict):
            raise TransportError("Response is missing the data payload", status_code=response.status_code, url=url)
        try:
            return ExecutionResult.from_api(data)
        except (KeyError, TypeError, ValueError) as e:
            raise TransportError(f"Malformed execution payload: {e}", status_code=response.status_code, url=url) from e
