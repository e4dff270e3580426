"""Subscription lifecycle: trials, plan changes and trial expiry."""
from __future__ import annotations

import datetime as dt
import logging
import math
from typing import Any, Dict, Optional
from uuid import UUID

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import (
    SUBSCRIPTION_ALREADY_EXISTS,
    SUBSCRIPTION_NOT_FOUND,
    BadRequestError,
    ConflictError,
    NotFoundError,
)
from src.db.models.plan import Plan
from src.db.models.subscription import ACTIVE_STATUSES, Subscription, SubscriptionStatus
from src.repositories.plan_repo import PlanRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.services.plan_configs import TRIAL_DURATION_DAYS, TRIAL_PLAN, PlanConfigApplier

logger = logging.getLogger(__name__)


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    """Treat naive timestamps (as returned by SQLite) as UTC."""

    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)


def format_inr(paise: int) -> str:
    """Render an amount in paise with Indian digit grouping, e.g. 1,49,999."""

    rupees, remainder = divmod(paise, 100)
    digits = str(rupees)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        digits = ",".join(groups + [tail])
    if remainder:
        return f"₹{digits}.{remainder:02d}"
    return f"₹{digits}"


def plan_to_dict(plan: Plan) -> Dict[str, Any]:
    price_display = (
        "Free" if plan.price_monthly == 0 else f"{format_inr(plan.price_monthly)}/month"
    )
    return {
        "id": plan.id,
        "code": plan.code,
        "name": plan.name,
        "description": plan.description,
        "price_monthly": plan.price_monthly,
        "price_display": price_display,
        "is_active": plan.is_active,
        "is_public": plan.is_public,
        "display_order": plan.display_order,
    }


def subscription_to_dict(
    subscription: Subscription, now: Optional[dt.datetime] = None
) -> Dict[str, Any]:
    now = now or utcnow()
    trial_ends_at = as_utc(subscription.trial_ends_at)
    trial_days_remaining = None
    if subscription.status == SubscriptionStatus.TRIALING.value and trial_ends_at is not None:
        seconds = (trial_ends_at - now).total_seconds()
        trial_days_remaining = max(0, math.ceil(seconds / 86400))

    return {
        "id": subscription.id,
        "tenant_id": subscription.tenant_id,
        "plan": plan_to_dict(subscription.plan),
        "status": subscription.status,
        "trial_ends_at": trial_ends_at,
        "trial_days_remaining": trial_days_remaining,
        "started_at": as_utc(subscription.started_at),
        "ends_at": as_utc(subscription.ends_at),
        "is_active": subscription.status in ACTIVE_STATUSES,
    }


class SubscriptionService:
    """Owns the single subscription each tenant has."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.plans = PlanRepo(session)
        self.subscriptions = SubscriptionRepo(session)
        self.applier = PlanConfigApplier(session)

    async def create_trial_subscription(self, tenant_id: UUID) -> Subscription:
        existing = await self.subscriptions.get_with_plan(tenant_id)
        if existing is not None:
            raise ConflictError(
                "Subscription already exists for tenant", code=SUBSCRIPTION_ALREADY_EXISTS
            )

        plan = await self.plans.get_by_code(TRIAL_PLAN.value)
        if plan is None:
            raise NotFoundError("Free plan not found. Run plan seed first.", code="PLAN_NOT_FOUND")

        trial_ends_at = utcnow() + relativedelta(days=TRIAL_DURATION_DAYS)
        subscription = await self.subscriptions.create(
            tenant_id, plan, SubscriptionStatus.TRIALING.value, trial_ends_at
        )
        await self.applier.apply(tenant_id, TRIAL_PLAN.value)

        logger.info(
            "Trial subscription created for tenant %s, expires %s",
            tenant_id,
            trial_ends_at.isoformat(),
        )
        return subscription

    async def get_current_subscription(self, tenant_id: UUID) -> Subscription | None:
        return await self.subscriptions.get_with_plan(tenant_id)

    async def list_plans(self) -> list[Plan]:
        return await self.plans.list_public()

    async def change_plan(self, tenant_id: UUID, plan_code: str, actor: str) -> Subscription:
        current = await self.subscriptions.get_with_plan(tenant_id)
        if current is None:
            raise NotFoundError("Subscription not found", code=SUBSCRIPTION_NOT_FOUND)

        target = await self.plans.get_by_code(plan_code)
        if target is None:
            raise NotFoundError("Plan not found", code="PLAN_NOT_FOUND")
        if not target.is_active:
            raise BadRequestError("Plan is not active", code="PLAN_INACTIVE")

        previous_code = current.plan.code if current.plan is not None else None
        updated = await self.subscriptions.activate(current, target)
        await self.applier.apply(tenant_id, target.code, actor=actor)

        logger.info(
            "Plan changed for tenant %s: %s -> %s by %s",
            tenant_id,
            previous_code,
            target.code,
            actor,
        )
        return updated

    async def is_subscription_active(self, tenant_id: UUID) -> bool:
        subscription = await self.subscriptions.get_with_plan(tenant_id)
        if subscription is None:
            return False
        return subscription.status in ACTIVE_STATUSES

    async def process_trial_expiry(self, now: Optional[dt.datetime] = None) -> int:
        count = await self.subscriptions.mark_expired_trials(now or utcnow())
        if count:
            logger.info("Marked %d expired trial subscriptions as past_due", count)
        return count
