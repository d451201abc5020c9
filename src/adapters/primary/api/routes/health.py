from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response, status

from src.adapters.primary.api.dependencies import get_storage
from src.domain.storage.exceptions import StorageError
from src.ports.secondary.key_value_storage import IKeyValueStorage
from src.shared.config import settings
from src.shared.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Health"])

@router.get("/health")
async def health_check(response: Response, storage: IKeyValueStorage = Depends(get_storage)):
    dependencies = {
        "storage": "unknown",
    }
    healthy = True

    try:
        storage.size_bytes()
        dependencies["storage"] = "healthy"
    except StorageError as e:
        logger.error("health_check_failed", dependency="storage", error=str(e))
        dependencies["storage"] = "unhealthy"
        healthy = False

    if not healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return {
        "status": "healthy" if healthy else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.APP_VERSION,
        "storage_backend": type(storage).__name__,
        "dependencies": dependencies
    }
