"""Prefixed ID generation utility."""

import secrets
import uuid


def generate_id(prefix: str) -> str:
    """Generate a prefixed unique ID.

    Args:
        prefix: The prefix (e.g., "whk_", "whj_", "dlv_").

    Returns:
        A string like "whk_a1b2c3d4e5f6a7b8".
    """
    short_uuid = uuid.uuid4().hex[:16]
    return f"{prefix}{short_uuid}"


def generate_secret() -> str:
    """Generate a signing secret for a new webhook subscription."""
    return f"whsec_{secrets.token_hex(24)}"
