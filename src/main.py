from contextlib import asynccontextmanager
import signal
import asyncio
from fastapi import FastAPI

from src.adapters.primary.api.error_handlers import general_exception_handler, workflow_exception_handler
from src.adapters.primary.api.routes.cards import router as cards_router
from src.adapters.primary.api.routes.executions import router as executions_router
from src.adapters.primary.api.routes.health import router as health_router
from src.adapters.primary.api.routes.history import router as history_router
from src.adapters.primary.api.routes.metrics import router as metrics_router
from src.application.cards.use_cases.sync_card_list import card_cache_key
from src.bootstrap import build_container
from src.domain.workflow.exceptions import WorkflowException
from src.shared.config import settings
from src.shared.logger import configure_logging, get_logger
from src.shared.metrics import metrics_registry

# Configure logging early
configure_logging(settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)

def signal_handler(shutdown_event: asyncio.Event):
    logger.info("shutdown_signal_received")
    shutdown_event.set()

@asynccontextmanager
async def lifespan(app: FastAPI):
    shutdown_event = asyncio.Event()

    # Register signal handlers for graceful shutdown if supported
    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler, shutdown_event)
    except (NotImplementedError, ValueError, RuntimeError):
        # - NotImplementedError: Signals not supported on some platforms (e.g. Windows)
        # - ValueError/RuntimeError: Can happen in some test environments or non-main threads
        pass

    container = getattr(app.state, "container", None) or build_container(settings, metrics=metrics_registry)
    app.state.container = container

    sync_task = None
    if settings.CARD_SYNC_ENABLED:
        catalog = container.card_catalog
        sync_task = asyncio.create_task(
            container.sync_card_list.run_periodic(
                card_cache_key(),
                catalog.list_cards,
                settings.CARD_SYNC_INTERVAL_SECONDS,
                shutdown_event,
            )
        )

    logger.info("application_started", version=settings.APP_VERSION)
    yield

    logger.info("application_shutting_down")
    shutdown_event.set()
    if sync_task is not None:
        await sync_task
    await container.aclose()
    logger.info("application_shutdown_complete")


app = FastAPI(
    title=settings.APP_NAME,
    description="Runs remote workflows to completion and keeps a queryable history of every attempt.",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

# Exceptions
app.add_exception_handler(WorkflowException, workflow_exception_handler)
app.add_exception_handler(Exception, general_exception_handler)

# Routes
app.include_router(executions_router)
app.include_router(history_router)
app.include_router(cards_router)
app.include_router(health_router)
app.include_router(metrics_router)
