from fastapi import APIRouter, Depends, Query, Response, status

from src.adapters.primary.api.dependencies import get_history_store
from src.adapters.primary.api.dto import (
    ErrorResponse,
    HistoryBulkDeleteRequest,
    HistoryDeleteResponse,
    HistoryImportRequest,
    HistoryImportResponse,
    HistoryItemResponse,
    HistoryListResponse,
    HistoryStatsResponse,
)
from src.domain.workflow.entities.history_item import SortBy, SortOrder
from src.domain.workflow.exceptions import HistoryItemNotFoundError, InvalidArgumentError
from src.domain.workflow.value_objects.execution_status import ExecutionStatus
from src.ports.secondary.history_store import IHistoryStore
from src.shared.logger import get_logger

logger = get_logger(__name__)

API_VERSION = "v1"
router = APIRouter(prefix=f"/api/{API_VERSION}/history", tags=["History"])


@router.get("", response_model=HistoryListResponse, summary="Query execution history")
async def list_history(
    card_id: str | None = None,
    status_filter: ExecutionStatus | None = Query(None, alias="status"),
    sort_by: SortBy = SortBy.TIMESTAMP,
    sort_order: SortOrder = SortOrder.DESC,
    offset: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    store: IHistoryStore = Depends(get_history_store),
) -> dict:
    items = store.query(
        card_id=card_id,
        status=status_filter,
        sort_by=sort_by,
        sort_order=sort_order,
        offset=offset,
        limit=limit,
    )
    return {"items": [item.to_dict() for item in items], "count": len(items)}


@router.get(
    "/stats",
    response_model=HistoryStatsResponse,
    response_model_exclude_none=True,
    summary="Aggregate execution history",
)
async def history_stats(
    card_id: str | None = None,
    store: IHistoryStore = Depends(get_history_store),
) -> dict:
    return store.stats(card_id).to_dict()


@router.get("/export", summary="Export history as a JSON array")
async def export_history(
    card_id: str | None = None,
    store: IHistoryStore = Depends(get_history_store),
) -> Response:
    return Response(content=store.export_all(card_id), media_type="application/json")


@router.post(
    "/import",
    response_model=HistoryImportResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Import an exported history snapshot",
)
async def import_history(
    request: HistoryImportRequest,
    store: IHistoryStore = Depends(get_history_store),
) -> HistoryImportResponse:
    if not store.import_all(request.data, merge=request.merge):
        raise InvalidArgumentError("data", "must be a JSON array of history items")
    logger.info("history_import_served", merge=request.merge)
    return HistoryImportResponse(imported=True)


@router.post("/delete", response_model=HistoryDeleteResponse, summary="Delete several history items")
async def delete_history_items(
    request: HistoryBulkDeleteRequest,
    store: IHistoryStore = Depends(get_history_store),
) -> HistoryDeleteResponse:
    return HistoryDeleteResponse(deleted=store.delete_many(request.ids))


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Delete all history")
async def clear_history(store: IHistoryStore = Depends(get_history_store)) -> Response:
    store.clear_all()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{history_id}",
    response_model=HistoryItemResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
    summary="Get one history item",
)
async def get_history_item(
    history_id: str,
    store: IHistoryStore = Depends(get_history_store),
) -> dict:
    item = store.get(history_id)
    if item is None:
        raise HistoryItemNotFoundError(history_id)
    return item.to_dict()


@router.delete(
    "/{history_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
    summary="Delete one history item",
)
async def delete_history_item(
    history_id: str,
    store: IHistoryStore = Depends(get_history_store),
) -> Response:
    if not store.delete(history_id):
        raise HistoryItemNotFoundError(history_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
