"""Repository helpers for the payment ledger."""
from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.payment import Payment, PaymentStatus

PAYABLE_STATUSES = (PaymentStatus.CREATED.value, PaymentStatus.FAILED.value)


class PaymentRepo:
    """Append-only access to :class:`Payment` rows.

    Status transitions are conditional updates so that two deliveries of the
    same provider event cannot both succeed.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(
        self,
        *,
        tenant_id: UUID,
        subscription_id: UUID,
        plan_id: UUID,
        provider_order_id: str,
        amount: int,
        currency: str,
        provider: str = "razorpay",
        meta: Optional[dict[str, Any]] = None,
    ) -> Payment:
        payment = Payment(
            tenant_id=tenant_id,
            subscription_id=subscription_id,
            plan_id=plan_id,
            provider=provider,
            provider_order_id=provider_order_id,
            amount=amount,
            currency=currency,
            status=PaymentStatus.CREATED.value,
            meta=meta or {},
        )
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def get_by_provider_order_id(self, order_id: str) -> Payment | None:
        result = await self.session.execute(
            select(Payment)
            .where(Payment.provider_order_id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_tenant(self, tenant_id: UUID, limit: int = 50) -> list[Payment]:
        result = await self.session.execute(
            select(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.created_at.desc())
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def mark_paid(self, order_id: str, provider_payment_id: Optional[str]) -> bool:
        """Transition an open or failed order to ``paid``; returns whether a row changed."""

        result = await self.session.execute(
            update(Payment)
            .where(
                Payment.provider_order_id == order_id,
                Payment.status.in_(PAYABLE_STATUSES),
            )
            .values(
                status=PaymentStatus.PAID.value,
                provider_payment_id=provider_payment_id,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)

    async def mark_failed(
        self,
        order_id: str,
        provider_payment_id: Optional[str],
        reason: Optional[str],
        meta: dict[str, Any],
    ) -> bool:
        """Record a failure for a still-open order; paid orders are never touched."""

        values: dict[Any, Any] = {
            Payment.status: PaymentStatus.FAILED.value,
            Payment.updated_at: func.now(),
            Payment.meta: {**meta, "failure_reason": reason},
        }
        if provider_payment_id:
            values[Payment.provider_payment_id] = provider_payment_id
        result = await self.session.execute(
            update(Payment)
            .where(
                Payment.provider_order_id == order_id,
                Payment.status == PaymentStatus.CREATED.value,
            )
            .values(values)
            .execution_options(synchronize_session=False)
        )
        return bool(result.rowcount)
