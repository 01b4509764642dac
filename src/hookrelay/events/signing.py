"""Timestamped HMAC-SHA256 signatures for outbound webhook bodies.

Header format: ``t=<unix-ms>,v1=<hex digest>``. The digest covers
``"<unix-ms>.<json body>"`` so a captured body cannot be replayed under a
different timestamp, and receivers reject timestamps outside the tolerance
window.
"""

import hashlib
import hmac
import json
import time
from typing import Any

DEFAULT_TOLERANCE_SECONDS = 300


def encode_json(payload: Any) -> str:
    """Compact JSON text for ``payload``. Strings are encoded too."""
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def serialize_payload(payload: Any) -> str:
    """Return the signed text: a str is taken as the already-serialized body."""
    if isinstance(payload, str):
        return payload
    return encode_json(payload)


def current_timestamp_ms() -> int:
    return int(time.time() * 1000)


def _digest(body: str, secret: str, timestamp_ms: int) -> str:
    message = f"{timestamp_ms}.{body}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def sign(payload: Any, secret: str, timestamp_ms: int) -> str:
    """Compute the signature header value for ``payload``.

    ``payload`` may be the already-serialized body or a JSON-compatible
    value, which is serialized with :func:`serialize_payload` first.
    """
    body = serialize_payload(payload)
    return f"t={timestamp_ms},v1={_digest(body, secret, timestamp_ms)}"


def parse_signature_header(header_value: str) -> tuple[int, str] | None:
    """Split a signature header into ``(timestamp_ms, hex digest)``."""
    timestamp = None
    signature = None
    for part in header_value.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp = value
        elif key == "v1":
            signature = value
    if not timestamp or not signature:
        return None
    return int(timestamp), signature


def verify(
    payload: Any,
    secret: str,
    header_value: str,
    now_ms: int | None = None,
    tolerance_seconds: int = DEFAULT_TOLERANCE_SECONDS,
) -> bool:
    """Check a signature header against ``payload`` and ``secret``.

    Returns False for a wrong digest, a timestamp further than
    ``tolerance_seconds`` from now in either direction, or any malformed
    input. Never raises.
    """
    try:
        parsed = parse_signature_header(header_value)
        if parsed is None:
            return False
        timestamp_ms, signature = parsed

        now_ms = current_timestamp_ms() if now_ms is None else now_ms
        if abs(now_ms - timestamp_ms) > tolerance_seconds * 1000:
            return False

        expected = _digest(serialize_payload(payload), secret, timestamp_ms)
        return hmac.compare_digest(expected, signature)
    except (AttributeError, TypeError, ValueError):
        return False
