from typing import Any

from pydantic import BaseModel, Field


class ExecutionRunRequest(BaseModel):
    card_id: str = Field(..., min_length=1, max_length=255)
    card_title: str = Field("", max_length=255)
    workflow_id: str = Field(..., min_length=1)
    parameters: dict[str, Any] = Field(default_factory=dict)
    bot_id: str | None = None


class RemoteErrorResponse(BaseModel):
    code: int
    msg: str
    kind: str | None = None


class ExecutionResultResponse(BaseModel):
    id: str
    status: str
    workflow_id: str | None = None
    output: Any = None
    error: RemoteErrorResponse | None = None
    debug_url: str | None = None
    created_at: int
    updated_at: int
    execution_time: float | None = None


class HistoryItemResponse(BaseModel):
    id: str
    cardId: str
    cardTitle: str
    inputs: dict[str, Any]
    result: ExecutionResultResponse | None = None
    timestamp: int
    executionTime: float | None = None


class HistoryListResponse(BaseModel):
    items: list[HistoryItemResponse]
    count: int


class HistoryStatsResponse(BaseModel):
    total: int
    completed: int
    failed: int
    running: int
    cancelled: int
    avgExecutionTime: float | None = None


class HistoryImportRequest(BaseModel):
    data: str = Field(..., min_length=1)
    merge: bool = True


class HistoryImportResponse(BaseModel):
    imported: bool


class HistoryBulkDeleteRequest(BaseModel):
    ids: list[str] = Field(..., min_length=1)


class HistoryDeleteResponse(BaseModel):
    deleted: int


class CardListResponse(BaseModel):
    cards: list[dict[str, Any]]
    count: int


class ErrorResponse(BaseModel):
    detail: str
