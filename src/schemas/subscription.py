"""Pydantic schemas for subscription endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field

from src.schemas.config import CamelModel


class PlanRead(CamelModel):
    id: UUID
    code: str
    name: str
    description: Optional[str] = None
    price_monthly: int = Field(..., description="Monthly price in paise")
    price_display: str
    is_active: bool
    is_public: bool
    display_order: int


class SubscriptionRead(CamelModel):
    id: UUID
    tenant_id: UUID
    plan: PlanRead
    status: str
    trial_ends_at: Optional[datetime] = None
    trial_days_remaining: Optional[int] = None
    started_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None
    is_active: bool


class ChangePlanRequest(CamelModel):
    plan_code: str = Field(..., min_length=1)
