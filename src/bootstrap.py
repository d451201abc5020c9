from dataclasses import dataclass, field
from pathlib import Path

import httpx
import redis

from src.adapters.secondary.cache.two_tier_cache_store import TwoTierCacheStore
from src.adapters.secondary.credentials.static_credential_provider import StaticCredentialProvider
from src.adapters.secondary.history.local_history_store import LocalHistoryStore
from src.adapters.secondary.http.http_card_catalog import HttpCardCatalog
from src.adapters.secondary.http.http_workflow_client import HttpWorkflowClient
from src.adapters.secondary.redis.redis_key_value_storage import RedisKeyValueStorage
from src.adapters.secondary.storage.in_memory_storage import InMemoryKeyValueStorage
from src.adapters.secondary.storage.json_file_storage import JsonFileKeyValueStorage
from src.application.cards.use_cases.sync_card_list import SyncCardListUseCase
from src.application.execution.use_cases.execute_workflow import ExecuteWorkflowUseCase
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.ports.secondary.metrics import IMetrics
from src.shared.config import Settings
from src.shared.logger import get_logger

logger = get_logger(__name__)


def build_storage(settings: Settings) -> IKeyValueStorage:
    if settings.STORAGE_BACKEND == "redis":
        client = redis.Redis.from_url(settings.redis_url, decode_responses=True)
        return RedisKeyValueStorage(client, key_prefix=settings.REDIS_KEY_PREFIX)
    if settings.STORAGE_BACKEND == "memory":
        return InMemoryKeyValueStorage(quota_bytes=settings.STORAGE_QUOTA_BYTES)
    return JsonFileKeyValueStorage(Path(settings.STORAGE_DIR), quota_bytes=settings.STORAGE_QUOTA_BYTES)


@dataclass
class AppContainer:
    """One instance of every store and client per process."""

    settings: Settings
    storage: IKeyValueStorage
    history_store: LocalHistoryStore
    cache_store: TwoTierCacheStore
    workflow_client: HttpWorkflowClient
    card_catalog: HttpCardCatalog
    execute_workflow: ExecuteWorkflowUseCase
    sync_card_list: SyncCardListUseCase
    http_client: httpx.AsyncClient = field(repr=False)
    _owns_http_client: bool = field(default=True, repr=False)

    async def aclose(self) -> None:
        await self.sync_card_list.aclose()
        if self._owns_http_client:
            await self.http_client.aclose()


def build_container(
    settings: Settings,
    storage: IKeyValueStorage | None = None,
    http_client: httpx.AsyncClient | None = None,
    metrics: IMetrics | None = None,
) -> AppContainer:
    storage = storage or build_storage(settings)
    owns_http_client = http_client is None
    http_client = http_client or httpx.AsyncClient(
        timeout=httpx.Timeout(settings.WORKFLOW_REQUEST_TIMEOUT_SECONDS)
    )
    credentials = StaticCredentialProvider(settings.WORKFLOW_API_TOKEN)

    history_store = LocalHistoryStore(
        storage,
        storage_key=settings.HISTORY_STORAGE_KEY,
        max_items=settings.HISTORY_MAX_ITEMS,
        cleanup_retain=settings.HISTORY_CLEANUP_RETAIN,
        metrics=metrics,
    )
    cache_store = TwoTierCacheStore(
        storage,
        key_prefix=settings.CACHE_KEY_PREFIX,
        default_ttl_ms=settings.CACHE_DEFAULT_TTL_MS,
        metrics=metrics,
    )
    workflow_client = HttpWorkflowClient(
        settings.WORKFLOW_API_BASE_URL,
        credentials,
        timeout_seconds=settings.WORKFLOW_REQUEST_TIMEOUT_SECONDS,
        max_attempts=settings.WORKFLOW_POLL_MAX_ATTEMPTS,
        interval_ms=settings.WORKFLOW_POLL_INTERVAL_MS,
        bot_id=settings.WORKFLOW_BOT_ID,
        http_client=http_client,
        metrics=metrics,
    )
    card_catalog = HttpCardCatalog(
        settings.CARDS_API_BASE_URL,
        credentials,
        timeout_seconds=settings.CARDS_REQUEST_TIMEOUT_SECONDS,
        http_client=http_client,
    )

    logger.info(
        "container_built",
        storage_backend=type(storage).__name__,
        history_max_items=settings.HISTORY_MAX_ITEMS,
    )
    return AppContainer(
        settings=settings,
        storage=storage,
        history_store=history_store,
        cache_store=cache_store,
        workflow_client=workflow_client,
        card_catalog=card_catalog,
        execute_workflow=ExecuteWorkflowUseCase(workflow_client, history_store, metrics=metrics),
        sync_card_list=SyncCardListUseCase(
            cache_store,
            cooldown_seconds=settings.CARD_SYNC_COOLDOWN_SECONDS,
            ttl_ms=settings.CARDS_CACHE_TTL_MS,
        ),
        http_client=http_client,
        _owns_http_client=owns_http_client,
    )
