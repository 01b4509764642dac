"""On-demand queue processing for hosts without the background schedule."""

import logging

from fastapi import APIRouter, Depends

from hookrelay.dependencies import get_http_client, get_session_factory, require_worker_token
from hookrelay.workers.scheduler import process_queue_once

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Queue"])


@router.post("/webhooks/queue/process", status_code=200, dependencies=[Depends(require_worker_token)])
async def process_queue(
    session_factory=Depends(get_session_factory),
    client=Depends(get_http_client),
) -> dict:
    """Run one delivery cycle and report per-outcome counts."""
    result = await process_queue_once(session_factory, client)
    return result.as_dict()
