"""Shared builders for tests."""
from __future__ import annotations

import datetime as dt
import hashlib
import hmac
import json
from typing import Any, Dict, Iterable, Optional, Tuple
from uuid import UUID, uuid4

import jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.db.models.config_entry import ConfigEntry
from src.db.models.plan import Plan
from src.db.models.subscription import Subscription, SubscriptionStatus
from src.db.models.tenant import Tenant
from src.services.plan_configs import PLAN_SEED

API_PREFIX = f"{settings.API_PREFIX}/v1"

ALL_PERMISSIONS = (
    "config:read",
    "config:update",
    "subscription:read",
    "subscription:update",
    "billing:create",
    "billing:read",
)


async def seed_plans(session: AsyncSession) -> None:
    session.add_all([Plan(**row) for row in PLAN_SEED])
    await session.flush()


async def get_plan(session: AsyncSession, code: str) -> Plan:
    result = await session.execute(select(Plan).where(Plan.code == code))
    return result.scalar_one()


async def seed_tenant(
    session: AsyncSession,
    *,
    plan_code: str = "FREE",
    status: str = SubscriptionStatus.TRIALING.value,
    trial_ends_at: Optional[dt.datetime] = None,
    with_subscription: bool = True,
) -> Tuple[Tenant, Optional[Subscription]]:
    tenant = Tenant(id=uuid4(), name="Springfield Elementary")
    session.add(tenant)
    await session.flush()

    subscription = None
    if with_subscription:
        plan = await get_plan(session, plan_code)
        if trial_ends_at is None and status == SubscriptionStatus.TRIALING.value:
            trial_ends_at = dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=14)
        subscription = Subscription(
            tenant_id=tenant.id,
            plan_id=plan.id,
            status=status,
            trial_ends_at=trial_ends_at,
            started_at=dt.datetime.now(dt.timezone.utc),
        )
        subscription.plan = plan
        session.add(subscription)
    await session.commit()
    return tenant, subscription


def build_auth_header(
    tenant_id: UUID,
    *,
    permissions: Iterable[str] = ALL_PERMISSIONS,
    user_id: str = "user-1",
    branch_id: Optional[UUID] = None,
) -> Dict[str, str]:
    claims: Dict[str, Any] = {
        "tenant_id": str(tenant_id),
        "sub": user_id,
        "permissions": list(permissions),
    }
    if branch_id is not None:
        claims["branch_id"] = str(branch_id)
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    return {"Authorization": f"Bearer {token}"}


def sign(body: bytes, secret: str = "whsec_test") -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def captured_event(order_id: str, amount: int, payment_id: str = "pay_123") -> bytes:
    return json.dumps(
        {
            "event": "payment.captured",
            "payload": {
                "payment": {
                    "entity": {"id": payment_id, "order_id": order_id, "amount": amount}
                }
            },
        }
    ).encode()


def failed_event(order_id: str, reason: str = "Card declined", payment_id: str = "pay_456") -> bytes:
    return json.dumps(
        {
            "event": "payment.failed",
            "payload": {
                "payment": {
                    "entity": {
                        "id": payment_id,
                        "order_id": order_id,
                        "amount": 149900,
                        "error_description": reason,
                    }
                }
            },
        }
    ).encode()


async def config_rows(session: AsyncSession, tenant_id: UUID) -> list[ConfigEntry]:
    result = await session.execute(
        select(ConfigEntry).where(ConfigEntry.tenant_id == tenant_id)
    )
    return list(result.scalars().all())
