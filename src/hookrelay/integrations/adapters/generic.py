"""Generic adapter: the payload verbatim as JSON, signed with the subscription secret."""

from __future__ import annotations

from hookrelay.events.signing import encode_json, sign
from hookrelay.integrations.adapters.base import DestinationConfig, OutboundJob, OutboundRequest

EVENT_HEADER = "X-Webhook-Event"
DELIVERY_HEADER = "X-Webhook-Delivery"
SIGNATURE_HEADER = "X-Webhook-Signature"
TIMESTAMP_HEADER = "X-Webhook-Timestamp"


def prepare_generic_request(job: OutboundJob, config: DestinationConfig, timestamp_ms: int) -> OutboundRequest:
    """Build the signed request integrators verify against their secret.

    The body is the exact serialization that was signed, so receivers can
    recompute the digest over the raw bytes they get.
    """
    body = encode_json(job.payload)
    return OutboundRequest(
        url=config.url,
        method="POST",
        headers={
            "Content-Type": "application/json",
            "User-Agent": config.user_agent,
            EVENT_HEADER: job.event,
            DELIVERY_HEADER: job.id,
            SIGNATURE_HEADER: sign(body, config.secret, timestamp_ms),
            TIMESTAMP_HEADER: str(timestamp_ms),
        },
        body=body,
    )
