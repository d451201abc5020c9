import asyncio
import inspect
import time
from typing import Any, Awaitable, Callable, Union

from src.domain.cache.value_objects.cache_lookup import CacheHit
from src.ports.secondary.cache_store import ICacheStore, Loader
from src.shared.logger import get_logger

logger = get_logger(__name__)

CARD_LIST_KEY = "feature_cards"
DEFAULT_CARD_TTL_MS = 10 * 60 * 1000
DEFAULT_SYNC_COOLDOWN_SECONDS = 60.0

ChangeListener = Callable[[str, Any], Union[None, Awaitable[Any]]]


def card_cache_key(user_id: str | None = None) -> str:
    return f"user_cards_{user_id}" if user_id else CARD_LIST_KEY


class SyncCardListUseCase:
    """
    Cached read path for list views, refreshed in the background.

    `load` answers from the cache when it can and kicks off a background
    refresh. A refresh is skipped while another refresh of the same key is in
    flight or when the last one started less than `cooldown_seconds` ago. A
    refresh that fetches a value equal to the cached one performs no cache
    write and notifies no listener.
    """

    def __init__(
        self,
        cache_store: ICacheStore,
        cooldown_seconds: float = DEFAULT_SYNC_COOLDOWN_SECONDS,
        ttl_ms: int = DEFAULT_CARD_TTL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._cache = cache_store
        self._cooldown_seconds = cooldown_seconds
        self._ttl_ms = ttl_ms
        self._clock = clock
        self._in_flight: set[str] = set()
        self._last_sync: dict[str, float] = {}
        self._listeners: list[ChangeListener] = []
        self._tasks: set[asyncio.Task] = set()

    def _now(self) -> float:
        return self._clock()

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Registers a change listener. Returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def load(self, key: str, loader: Loader, force_refresh: bool = False) -> Any:
        if not force_refresh:
            cached = self._cache.lookup(key)
            if isinstance(cached, CacheHit):
                self.schedule_sync(key, loader)
                return cached.value

        value = await loader()
        self._cache.set(key, value, self._ttl_ms)
        self._last_sync[key] = self._now()
        return value

    def schedule_sync(self, key: str, loader: Loader) -> asyncio.Task | None:
        if not self._should_sync(key):
            return None
        task = asyncio.create_task(self.sync_in_background(key, loader))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _should_sync(self, key: str) -> bool:
        if key in self._in_flight:
            return False
        last = self._last_sync.get(key)
        return last is None or self._now() - last >= self._cooldown_seconds

    async def sync_in_background(self, key: str, loader: Loader) -> bool:
        """
        Refreshes one key. Returns True when the cached value changed.

        Loader failures are logged and leave the cached value untouched.
        """
        if not self._should_sync(key):
            logger.debug("card_sync_skipped", key=key)
            return False

        self._in_flight.add(key)
        self._last_sync[key] = self._now()
        try:
            fresh = await loader()
        except Exception as e:
            logger.warning("card_sync_failed", key=key, error=str(e))
            return False
        finally:
            self._in_flight.discard(key)

        current = self._cache.lookup(key)
        if isinstance(current, CacheHit) and current.value == fresh:
            logger.debug("card_sync_unchanged", key=key)
            return False

        self._cache.set(key, fresh, self._ttl_ms)
        logger.info("card_sync_updated", key=key)
        await self._notify(key, fresh)
        return True

    async def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(key, value)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("card_sync_listener_failed", key=key, error=str(e))

    async def run_periodic(
        self,
        key: str,
        loader: Loader,
        interval_seconds: float,
        stop_event: asyncio.Event,
    ) -> None:
        logger.info("card_sync_loop_started", key=key, interval_seconds=interval_seconds)
        while not stop_event.is_set():
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                await self.sync_in_background(key, loader)
        logger.info("card_sync_loop_stopped", key=key)

    async def aclose(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
