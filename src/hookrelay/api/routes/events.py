"""Inbound domain events from out-of-process producers."""

from fastapi import APIRouter, Depends

from hookrelay.dependencies import get_current_user, get_session_factory
from hookrelay.events.trigger import dispatch_event
from hookrelay.models.webhook import EventIn

router = APIRouter(tags=["Events"])


@router.post("/workspaces/{workspace_id}/events", status_code=202)
async def publish_event(
    workspace_id: str,
    body: EventIn,
    session_factory=Depends(get_session_factory),
    user_id: str = Depends(get_current_user),
) -> dict:
    """Fan ``body.event`` out to the workspace's subscriptions.

    Returns immediately; enqueueing happens on a detached task and its
    failures are only logged.
    """
    dispatch_event(session_factory, body.event, body.payload, workspace_id)
    return {"accepted": True, "event": body.event, "workspace_id": workspace_id}
