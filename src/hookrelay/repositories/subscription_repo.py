"""Webhook subscription repository."""

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hookrelay.db.models.webhook import SubscriptionRow
from hookrelay.models.enums import WILDCARD_EVENT
from hookrelay.repositories.base import BaseRepository


def subscription_matches_event(patterns: list[str] | None, event: str) -> bool:
    """Return True if any subscribed pattern selects ``event``.

    Patterns are exact event names, the bare ``*`` wildcard, or a
    ``prefix.*`` pattern matching every event under that namespace.
    """
    for pattern in patterns or []:
        if pattern == WILDCARD_EVENT or pattern == event:
            return True
        if pattern.endswith(".*") and event.startswith(pattern[:-1]):
            return True
    return False


class SubscriptionRepository(BaseRepository):
    def __init__(self, session: AsyncSession):
        super().__init__(session, SubscriptionRow)

    async def get(self, subscription_id: str) -> SubscriptionRow | None:
        return await self.get_by_id("id", subscription_id)

    async def list_by_workspace(self, workspace_id: str) -> list[SubscriptionRow]:
        """List all subscriptions of a workspace, newest first."""
        stmt = (
            select(SubscriptionRow)
            .where(SubscriptionRow.workspace_id == workspace_id)
            .order_by(SubscriptionRow.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_matching(self, workspace_id: str, event: str) -> list[SubscriptionRow]:
        """List active subscriptions of a workspace that want ``event``."""
        stmt = select(SubscriptionRow).where(
            and_(
                SubscriptionRow.workspace_id == workspace_id,
                SubscriptionRow.is_active.is_(True),
            )
        )
        result = await self.session.execute(stmt)
        return [
            row for row in result.scalars().all()
            if subscription_matches_event(row.events, event)
        ]

    async def reset_failure_count(self, subscription_id: str) -> None:
        await self.session.execute(
            update(SubscriptionRow)
            .where(SubscriptionRow.id == subscription_id)
            .values(failure_count=0)
        )

    async def increment_failure_count(self, subscription_id: str) -> None:
        await self.session.execute(
            update(SubscriptionRow)
            .where(SubscriptionRow.id == subscription_id)
            .values(failure_count=SubscriptionRow.failure_count + 1)
        )
