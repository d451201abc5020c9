from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter(tags=["Metrics"])

@router.get("/metrics")
async def metrics():
    """
    Prometheus scrape endpoint: execution outcomes and durations, poll
    attempts, cache lookups per tier and history retention trims.
    """
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)
