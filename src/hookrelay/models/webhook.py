"""Pydantic models for webhook subscriptions, events and delivery records."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field

from hookrelay.models.enums import AdapterType

EventName = Annotated[str, Field(min_length=1, max_length=200, pattern=r"^[a-z0-9_]+(\.[a-z0-9_]+)*$")]

# A subscribed event is an exact name, a "prefix.*" pattern, or the bare "*" wildcard.
EventPattern = Annotated[str, Field(min_length=1, max_length=200, pattern=r"^(\*|[a-z0-9_]+(\.[a-z0-9_]+)*(\.\*)?)$")]


class SubscriptionCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str = Field(..., pattern=r"^https?://", max_length=2000)
    adapter_type: AdapterType = AdapterType.GENERIC
    events: list[EventPattern] = Field(default_factory=list)
    is_active: bool = True
    description: str | None = None
    silent_mode: bool = False


class SubscriptionUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    url: str | None = Field(None, pattern=r"^https?://", max_length=2000)
    adapter_type: AdapterType | None = None
    events: list[EventPattern] | None = None
    is_active: bool | None = None
    description: str | None = None
    silent_mode: bool | None = None


class SubscriptionModel(BaseModel):
    """Subscription as returned by the admin API. The secret is omitted."""

    id: str
    workspace_id: str
    url: str
    adapter_type: str
    events: list[str]
    is_active: bool
    description: str | None = None
    silent_mode: bool
    failure_count: int
    created_by: str
    created_at: datetime
    updated_at: datetime


class SubscriptionCreatedModel(SubscriptionModel):
    """Returned once on creation so the integrator can store the signing secret."""

    secret: str


class DeliveryRecordModel(BaseModel):
    id: str
    subscription_id: str
    job_id: str | None = None
    event: str
    payload: Any
    request_headers: dict[str, str] | None = None
    response_status: int | None = None
    response_body: str | None = None
    duration_ms: int
    attempt_index: int
    created_at: datetime


class EventIn(BaseModel):
    """A domain event handed over by a CRUD collaborator."""

    model_config = ConfigDict(extra="forbid")

    event: EventName
    payload: Any = Field(default_factory=dict)
