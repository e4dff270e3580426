"""Repository utilities for tenant subscriptions."""
from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.db.models.plan import Plan
from src.db.models.subscription import Subscription, SubscriptionStatus


class SubscriptionRepo:
    """Data-access helpers for :class:`Subscription`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_with_plan(self, tenant_id: UUID) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription)
            .options(selectinload(Subscription.plan))
            .where(Subscription.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_by_id(self, subscription_id: UUID) -> Subscription | None:
        result = await self.session.execute(
            select(Subscription)
            .options(selectinload(Subscription.plan))
            .where(Subscription.id == subscription_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def create(
        self,
        tenant_id: UUID,
        plan: Plan,
        status: str,
        trial_ends_at: dt.datetime | None,
    ) -> Subscription:
        subscription = Subscription(
            tenant_id=tenant_id,
            plan_id=plan.id,
            status=status,
            trial_ends_at=trial_ends_at,
            started_at=dt.datetime.now(dt.timezone.utc),
        )
        subscription.plan = plan
        self.session.add(subscription)
        await self.session.flush()
        return subscription

    async def activate(self, subscription: Subscription, plan: Plan) -> Subscription:
        """Move ``subscription`` onto ``plan`` as a paid, open-ended term."""

        subscription.plan = plan
        subscription.plan_id = plan.id
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.trial_ends_at = None
        subscription.ends_at = None
        self.session.add(subscription)
        await self.session.flush()
        return subscription

    async def mark_expired_trials(self, now: dt.datetime) -> int:
        """Flip every lapsed trial to past_due in a single statement."""

        result = await self.session.execute(
            update(Subscription)
            .where(
                Subscription.status == SubscriptionStatus.TRIALING.value,
                Subscription.trial_ends_at.is_not(None),
                Subscription.trial_ends_at < now,
            )
            .values(status=SubscriptionStatus.PAST_DUE.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return int(result.rowcount or 0)
