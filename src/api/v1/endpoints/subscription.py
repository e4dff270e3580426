"""Endpoints for the tenant's current subscription and the plan catalog."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_auth, require_permission
from src.core.exceptions import SUBSCRIPTION_NOT_FOUND, NotFoundError
from src.schemas.subscription import ChangePlanRequest, PlanRead, SubscriptionRead
from src.services.subscriptions import SubscriptionService, plan_to_dict, subscription_to_dict


router = APIRouter(prefix="/subscription", tags=["subscription"])


@router.get("/current", response_model=SubscriptionRead)
async def current_subscription(
    auth=Depends(require_permission("subscription:read")),
    db: AsyncSession = Depends(get_db_session),
):
    subscription = await SubscriptionService(db).get_current_subscription(auth["tenant_id"])
    if subscription is None:
        raise NotFoundError("No subscription found", code=SUBSCRIPTION_NOT_FOUND)
    return subscription_to_dict(subscription)


@router.get("/plans", response_model=list[PlanRead])
async def list_plans(
    auth=Depends(require_auth),
    db: AsyncSession = Depends(get_db_session),
):
    plans = await SubscriptionService(db).list_plans()
    return [plan_to_dict(plan) for plan in plans]


@router.post("/change-plan", response_model=SubscriptionRead)
async def change_plan(
    body: ChangePlanRequest,
    auth=Depends(require_permission("subscription:update")),
    db: AsyncSession = Depends(get_db_session),
):
    actor = auth["user_id"] or "admin"
    subscription = await SubscriptionService(db).change_plan(
        auth["tenant_id"], body.plan_code, actor
    )
    return subscription_to_dict(subscription)
