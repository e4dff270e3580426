"""Endpoints for managing tenants (bootstrap utilities)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.repositories.tenant_repo import TenantRepo
from src.services.subscriptions import SubscriptionService, subscription_to_dict


router = APIRouter(prefix="/tenants", tags=["tenants"])


@router.post("/create")
async def create_tenant(
    name: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db_session),
):
    tenant = await TenantRepo(db).create(name)
    subscription = await SubscriptionService(db).create_trial_subscription(tenant.id)
    summary = subscription_to_dict(subscription)

    return {
        "tenant_id": str(tenant.id),
        "plan_code": summary["plan"]["code"],
        "status": summary["status"],
        "trial_ends_at": summary["trial_ends_at"].isoformat() if summary["trial_ends_at"] else None,
        "trial_days_remaining": summary["trial_days_remaining"],
    }
