from fastapi import APIRouter, Depends

from src.adapters.primary.api.dependencies import (
    get_bearer_credential,
    get_card_catalog,
    get_sync_card_list_use_case,
)
from src.adapters.primary.api.dto import CardListResponse, ErrorResponse
from src.application.cards.use_cases.sync_card_list import SyncCardListUseCase, card_cache_key
from src.ports.secondary.card_catalog import ICardCatalog

API_VERSION = "v1"
router = APIRouter(prefix=f"/api/{API_VERSION}/cards", tags=["Cards"])


@router.get(
    "",
    response_model=CardListResponse,
    responses={401: {"model": ErrorResponse}, 502: {"model": ErrorResponse}},
    summary="List feature cards",
    description="Cached card list; a cache hit triggers a rate-limited background refresh.",
)
async def list_cards(
    user_id: str | None = None,
    force_refresh: bool = False,
    credential: str | None = Depends(get_bearer_credential),
    use_case: SyncCardListUseCase = Depends(get_sync_card_list_use_case),
    catalog: ICardCatalog = Depends(get_card_catalog),
) -> CardListResponse:
    async def loader():
        return await catalog.list_cards(credential)

    cards = await use_case.load(card_cache_key(user_id), loader, force_refresh=force_refresh)
    return CardListResponse(cards=cards, count=len(cards))
