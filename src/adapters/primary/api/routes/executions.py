from fastapi import APIRouter, Depends, status

from src.adapters.primary.api.dependencies import get_bearer_credential, get_execute_workflow_use_case
from src.adapters.primary.api.dto import ErrorResponse, ExecutionResultResponse, ExecutionRunRequest
from src.application.execution.use_cases.execute_workflow import ExecuteWorkflowUseCase
from src.domain.workflow.value_objects.execution_request import ExecutionRequest
from src.shared.logger import get_logger

logger = get_logger(__name__)

API_VERSION = "v1"
router = APIRouter(prefix=f"/api/{API_VERSION}/executions", tags=["Executions"])


@router.post(
    "",
    response_model=ExecutionResultResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
    status_code=status.HTTP_200_OK,
    summary="Run a workflow",
    description="Submit a workflow run, poll it to a terminal state and record the attempt in history.",
)
async def run_workflow(
    request: ExecutionRunRequest,
    credential: str | None = Depends(get_bearer_credential),
    use_case: ExecuteWorkflowUseCase = Depends(get_execute_workflow_use_case),
) -> dict:
    """
    Blocks until the run completes, fails or exhausts its polling budget.

    Failures are still recorded in history before the error response is sent.
    """
    result = await use_case.execute(
        card_id=request.card_id,
        card_title=request.card_title,
        request=ExecutionRequest(
            workflow_id=request.workflow_id,
            parameters=request.parameters,
            credential=credential,
            bot_id=request.bot_id,
        ),
    )
    logger.info("execution_request_served", execution_id=result.id, status=result.status.value)
    return result.to_dict()
