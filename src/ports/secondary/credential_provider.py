from abc import ABC, abstractmethod


class ICredentialProvider(ABC):
    @abstractmethod
    def get_token(self) -> str | None:
        """Returns the bearer token for the remote API, or None when signed out."""
        pass
