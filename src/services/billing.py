"""Order creation for plan upgrades.

Creating an order never changes the subscription; activation happens only
when the provider confirms the payment through the webhook.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import (
    PLAN_NOT_PAYABLE,
    SUBSCRIPTION_NOT_FOUND,
    BadRequestError,
    NotFoundError,
)
from src.db.models.payment import Payment
from src.repositories.payment_repo import PaymentRepo
from src.repositories.plan_repo import PlanRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.services import razorpay_service
from src.services.subscriptions import as_utc

logger = logging.getLogger(__name__)

PROVIDER_RAZORPAY = "razorpay"


@dataclass(frozen=True)
class BillingContext:
    tenant_id: UUID
    user_id: Optional[str] = None


def build_receipt(tenant_id: UUID, now_ms: Optional[int] = None) -> str:
    """Receipt id sent to the provider: first 8 chars of the tenant + epoch ms."""

    now_ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{str(tenant_id)[:8]}_{now_ms}"


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "tenant_id": payment.tenant_id,
        "subscription_id": payment.subscription_id,
        "plan_id": payment.plan_id,
        "provider": payment.provider,
        "provider_order_id": payment.provider_order_id,
        "provider_payment_id": payment.provider_payment_id,
        "amount": payment.amount,
        "currency": payment.currency,
        "status": payment.status,
        "created_at": as_utc(payment.created_at),
    }


class OrderService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.plans = PlanRepo(session)
        self.subscriptions = SubscriptionRepo(session)
        self.payments = PaymentRepo(session)

    async def create_order(self, plan_code: str, context: BillingContext) -> Dict[str, Any]:
        subscription = await self.subscriptions.get_with_plan(context.tenant_id)
        if subscription is None:
            raise NotFoundError("Subscription not found", code=SUBSCRIPTION_NOT_FOUND)

        plan = await self.plans.get_by_code(plan_code)
        if plan is None:
            raise NotFoundError("Plan not found", code="PLAN_NOT_FOUND")
        if plan.price_monthly == 0:
            raise BadRequestError("Plan is not payable", code=PLAN_NOT_PAYABLE)
        if not plan.is_active:
            raise BadRequestError("Plan is not active", code="PLAN_INACTIVE")

        currency = settings.billing.currency
        receipt = build_receipt(context.tenant_id)
        order = await razorpay_service.create_order(
            plan.price_monthly,
            currency,
            receipt,
            {
                "tenantId": str(context.tenant_id),
                "planCode": plan.code,
                "planId": str(plan.id),
            },
        )

        await self.payments.create(
            tenant_id=context.tenant_id,
            subscription_id=subscription.id,
            plan_id=plan.id,
            provider=PROVIDER_RAZORPAY,
            provider_order_id=order["id"],
            amount=plan.price_monthly,
            currency=currency,
            meta={"receipt": receipt, "planCode": plan.code, "userId": context.user_id},
        )

        logger.info(
            "Order created: order_id=%s tenant=%s plan=%s amount=%s",
            order["id"],
            context.tenant_id,
            plan.code,
            plan.price_monthly,
        )
        return {
            "order_id": order["id"],
            "amount": plan.price_monthly,
            "currency": currency,
            "key": settings.RAZORPAY_KEY_ID,
            "plan_code": plan.code,
            "plan_name": plan.name,
        }

    async def list_payments(self, tenant_id: UUID) -> list[Payment]:
        return await self.payments.list_for_tenant(tenant_id)
