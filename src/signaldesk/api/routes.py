"""
Main API router configuration.
"""

from fastapi import APIRouter

from signaldesk.api.endpoints import annotations, cluster, ingest, insights, signals, webhooks

api_router = APIRouter()

api_router.include_router(ingest.router, prefix="/ingest", tags=["capture"])
api_router.include_router(signals.router, prefix="/signals", tags=["signals"])
api_router.include_router(cluster.router, prefix="/cluster", tags=["signals"])
api_router.include_router(insights.router, prefix="/insights", tags=["insights"])
api_router.include_router(annotations.thoughts_router, prefix="/thoughts", tags=["annotations"])
api_router.include_router(annotations.highlights_router, prefix="/highlights", tags=["annotations"])
api_router.include_router(webhooks.router, prefix="/settings/webhooks", tags=["settings"])
