from typing import Any

import httpx

from src.domain.workflow.exceptions import TransportError, UnauthenticatedError
from src.ports.secondary.card_catalog import ICardCatalog
from src.ports.secondary.credential_provider import ICredentialProvider
from src.shared.logger import get_logger

logger = get_logger(__name__)


def normalize_card(card: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": str(card["id"]),
        "name": card.get("name", ""),
        "desc": card.get("desc", ""),
        "iconName": card.get("iconName"),
        "bgColor": card.get("bgColor"),
        "order": card.get("order") or 0,
        "enabled": card.get("enabled") is not False,
        "createdAt": card.get("createdAt"),
    }


class HttpCardCatalog(ICardCatalog):
    """
    Reads the feature-card list from the CRUD application (`GET /api/cards`).

    Response envelope: {success, data: [card, ...], message}.
    """

    def __init__(
        self,
        base_url: str,
        credential_provider: ICredentialProvider | None = None,
        timeout_seconds: float = 10.0,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._url = f"{base_url.rstrip('/')}/api/cards"
        self._credentials = credential_provider
        self._timeout = httpx.Timeout(timeout_seconds)
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self._timeout)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    async def list_cards(self, credential: str | None = None) -> list[dict[str, Any]]:
        token = credential or (self._credentials.get_token() if self._credentials else None)
        if not token:
            raise UnauthenticatedError()

        try:
            response = await self._http.get(
                self._url,
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Card list request failed: {e}", url=self._url) from e

        if response.status_code == 401:
            raise UnauthenticatedError("Card list request was rejected (HTTP 401)")
        if not response.is_success:
            raise TransportError(
                f"HTTP error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                url=self._url,
            )

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError("Card list body is not valid JSON", url=self._url) from e
        if not isinstance(body, dict) or not body.get("success") or not isinstance(body.get("data"), list):
            raise TransportError("Card list response was not successful", status_code=response.status_code, url=self._url)

        cards = [normalize_card(card) for card in body["data"] if isinstance(card, dict) and "id" in card]
        logger.debug("card_list_loaded", count=len(cards))
        return cards
