from src.ports.secondary.credential_provider import ICredentialProvider


class StaticCredentialProvider(ICredentialProvider):
    """Serves a token configured at process start (e.g. WORKFLOW_API_TOKEN)."""

    def __init__(self, token: str | None = None):
        self._token = token or None

    def get_token(self) -> str | None:
        return self._token
