"""Master API router mounted at /api/v1."""

from fastapi import APIRouter
from hookrelay.api.routes import (
    events,
    health,
    queue,
    webhooks,
)

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["Health"])
# Registered before the webhook routes so /webhooks/queue/... is never read as an id
api_router.include_router(queue.router)
api_router.include_router(webhooks.router)
api_router.include_router(events.router)
