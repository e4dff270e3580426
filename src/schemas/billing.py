"""Pydantic schemas for billing endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from src.schemas.config import CamelModel


class CreateOrderRequest(CamelModel):
    plan_code: str = Field(..., min_length=1)


class CreateOrderResponse(CamelModel):
    order_id: str
    amount: int = Field(..., description="Amount in paise")
    currency: str
    key: Optional[str] = Field(default=None, description="Public provider key for checkout")
    plan_code: str
    plan_name: str


class PaymentRead(CamelModel):
    id: UUID
    tenant_id: UUID
    subscription_id: UUID
    plan_id: UUID
    provider: str
    provider_order_id: str
    provider_payment_id: Optional[str] = None
    amount: int
    currency: str
    status: str
    created_at: Optional[datetime] = None


class WebhookResponse(CamelModel):
    success: bool
    message: str
