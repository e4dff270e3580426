"""Endpoints for plan upgrade orders and the payment provider webhook."""
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import require_permission
from src.schemas.billing import (
    CreateOrderRequest,
    CreateOrderResponse,
    PaymentRead,
    WebhookResponse,
)
from src.services.billing import BillingContext, OrderService, payment_to_dict
from src.services.config_store import ConfigStore
from src.services.limits import enforce_tenant_rate_limit, ensure_idempotent
from src.services.webhooks import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/billing", tags=["billing"])


@router.post("/create-order", response_model=CreateOrderResponse)
async def create_order(
    body: CreateOrderRequest,
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
    auth=Depends(require_permission("billing:create")),
    db: AsyncSession = Depends(get_db_session),
):
    tenant_id = auth["tenant_id"]
    await enforce_tenant_rate_limit(ConfigStore(db), tenant_id)
    await ensure_idempotent(str(tenant_id), idempotency_key)

    context = BillingContext(tenant_id=tenant_id, user_id=auth["user_id"])
    return await OrderService(db).create_order(body.plan_code, context)


@router.get("/payments", response_model=list[PaymentRead])
async def list_payments(
    auth=Depends(require_permission("billing:read")),
    db: AsyncSession = Depends(get_db_session),
):
    payments = await OrderService(db).list_payments(auth["tenant_id"])
    return [payment_to_dict(payment) for payment in payments]


@router.post("/webhook", response_model=WebhookResponse)
async def payment_webhook(
    request: Request,
    x_signature: Optional[str] = Header(default=None),
    x_razorpay_signature: Optional[str] = Header(default=None),
    db: AsyncSession = Depends(get_db_session),
):
    """Always answers 200 so the provider does not retry business rejections."""

    raw_body = await request.body()
    try:
        result = await WebhookProcessor(db).handle(raw_body, x_signature or x_razorpay_signature)
    except Exception:
        logger.exception("Webhook processing failed")
        await db.rollback()
        return WebhookResponse(success=False, message="Internal error")

    logger.info(
        "Webhook handled success=%s processed=%s message=%s",
        result.success,
        result.processed,
        result.message,
    )
    return WebhookResponse(success=result.success, message=result.message)
