from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # === Application ===
    APP_NAME: str = "Workflow Execution Orchestrator"
    APP_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # === Remote workflow API ===
    WORKFLOW_API_BASE_URL: str = "https://api.coze.cn/v1"
    WORKFLOW_API_TOKEN: str | None = None
    WORKFLOW_BOT_ID: str | None = None
    WORKFLOW_REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Polling: constant interval, total wall time is bounded by attempts * interval
    WORKFLOW_POLL_MAX_ATTEMPTS: int = 60
    WORKFLOW_POLL_INTERVAL_MS: int = 2000

    # === Local persistence ===
    STORAGE_BACKEND: str = "file"
    STORAGE_DIR: str = ".workflow_state"
    STORAGE_QUOTA_BYTES: int = 5 * 1024 * 1024

    # === Redis (used when STORAGE_BACKEND=redis) ===
    redis_url: str = "redis://localhost:6379/0"
    REDIS_HOST: str | None = None
    REDIS_PORT: int = 6379
    REDIS_KEY_PREFIX: str = "orchestrator:"

    # === History ===
    HISTORY_STORAGE_KEY: str = "workflow_history"
    HISTORY_MAX_ITEMS: int = 1000
    HISTORY_CLEANUP_RETAIN: int = 500

    # === Cache ===
    CACHE_KEY_PREFIX: str = "cache_"
    CACHE_DEFAULT_TTL_MS: int = 5 * 60 * 1000

    # === Card list read path ===
    CARDS_API_BASE_URL: str = "http://localhost:3000"
    CARDS_REQUEST_TIMEOUT_SECONDS: float = 10.0
    CARDS_CACHE_TTL_MS: int = 10 * 60 * 1000
    CARD_SYNC_ENABLED: bool = False
    CARD_SYNC_COOLDOWN_SECONDS: float = 60.0
    CARD_SYNC_INTERVAL_SECONDS: float = 300.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def construct_redis_url_from_components(self) -> "Settings":
        """Construct redis_url from individual host/port fields when set."""
        if self.REDIS_HOST:
            self.redis_url = f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/0"
        if self.HISTORY_CLEANUP_RETAIN > self.HISTORY_MAX_ITEMS:
            self.HISTORY_CLEANUP_RETAIN = self.HISTORY_MAX_ITEMS
        return self

    @field_validator(
        "WORKFLOW_POLL_MAX_ATTEMPTS",
        "WORKFLOW_REQUEST_TIMEOUT_SECONDS",
        "HISTORY_MAX_ITEMS",
        "HISTORY_CLEANUP_RETAIN",
        "CACHE_DEFAULT_TTL_MS",
        "CARDS_CACHE_TTL_MS",
        "CARDS_REQUEST_TIMEOUT_SECONDS",
    )
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    @field_validator("WORKFLOW_POLL_INTERVAL_MS")
    @classmethod
    def validate_poll_interval(cls, v: int) -> int:
        if v < 0:
            raise ValueError("Poll interval cannot be negative")
        return v

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def validate_storage_backend(cls, v: str) -> str:
        backend = v.lower()
        if backend not in ("file", "redis", "memory"):
            raise ValueError(f"Unsupported storage backend: {v}")
        return backend


try:
    settings = Settings()
except Exception as e:
    import sys

    print(f"CRITICAL: Configuration validation failed: {e}")
    sys.exit(1)
