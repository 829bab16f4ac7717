"""
Prometheus scrape endpoint
"""
from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from core.exporter import get_exporter

router = APIRouter()


@router.get("/metrics")
async def metrics():
    """Text exposition of every pool gauge and counter"""
    registry = get_exporter().sink.registry
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
