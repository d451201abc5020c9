from abc import ABC, abstractmethod
from typing import Any


class ICardCatalog(ABC):
    """Read-only view of the feature-card list served by the CRUD application."""

    @abstractmethod
    async def list_cards(self, credential: str | None = None) -> list[dict[str, Any]]:
        pass
