import datetime as dt
from uuid import uuid4

import pytest
from sqlalchemy import select

from src.core.exceptions import BadRequestError, ConflictError, NotFoundError
from src.db.models.subscription import Subscription
from src.db.models.tenant import Tenant
from src.services.config_store import ConfigStore
from src.services.subscriptions import (
    SubscriptionService,
    format_inr,
    plan_to_dict,
    subscription_to_dict,
)
from tests.helpers import get_plan, seed_tenant


@pytest.mark.asyncio
async def test_trial_starts_on_free_with_free_plan_configs(test_db):
    tenant = Tenant(id=uuid4(), name="New School")
    test_db.add(tenant)
    await test_db.flush()

    subscription = await SubscriptionService(test_db).create_trial_subscription(tenant.id)
    await test_db.commit()

    assert subscription.status == "trialing"
    assert subscription.plan.code == "FREE"
    summary = subscription_to_dict(subscription)
    assert summary["trial_days_remaining"] == 14
    assert summary["is_active"] is True

    store = ConfigStore(test_db)
    assert await store.is_feature_enabled("fees.enabled", tenant.id) is False
    assert await store.get_limit("limits.maxStudents", tenant.id) == 50


@pytest.mark.asyncio
async def test_second_trial_is_rejected(test_db):
    tenant, _ = await seed_tenant(test_db)
    with pytest.raises(ConflictError):
        await SubscriptionService(test_db).create_trial_subscription(tenant.id)


@pytest.mark.asyncio
async def test_change_plan_activates_and_applies_configs(test_db):
    tenant, _ = await seed_tenant(test_db)
    service = SubscriptionService(test_db)

    updated = await service.change_plan(tenant.id, "PRO", actor="admin-1")
    await test_db.commit()

    assert updated.status == "active"
    assert updated.plan.code == "PRO"
    assert updated.trial_ends_at is None
    store = ConfigStore(test_db)
    assert await store.is_feature_enabled("timetable.enabled", tenant.id) is True
    assert await store.get_limit("limits.maxStudents", tenant.id) == 1000


@pytest.mark.asyncio
async def test_change_plan_errors(test_db):
    service = SubscriptionService(test_db)
    with pytest.raises(NotFoundError):
        await service.change_plan(uuid4(), "PRO", actor="admin")

    tenant, _ = await seed_tenant(test_db)
    with pytest.raises(NotFoundError):
        await service.change_plan(tenant.id, "PLATINUM", actor="admin")

    plan = await get_plan(test_db, "BASIC")
    plan.is_active = False
    await test_db.commit()
    with pytest.raises(BadRequestError):
        await service.change_plan(tenant.id, "BASIC", actor="admin")


@pytest.mark.asyncio
async def test_trial_expiry_sweep_only_touches_lapsed_trials(test_db):
    past = dt.datetime.now(dt.timezone.utc) - dt.timedelta(days=1)
    lapsed, _ = await seed_tenant(test_db, trial_ends_at=past)
    running, _ = await seed_tenant(test_db)
    paying, _ = await seed_tenant(test_db, plan_code="BASIC", status="active")

    service = SubscriptionService(test_db)
    assert await service.process_trial_expiry() == 1
    await test_db.commit()

    result = await test_db.execute(
        select(Subscription.tenant_id, Subscription.status).execution_options(populate_existing=True)
    )
    statuses = dict(result.all())
    assert statuses[lapsed.id] == "past_due"
    assert statuses[running.id] == "trialing"
    assert statuses[paying.id] == "active"

    assert await service.is_subscription_active(lapsed.id) is False
    assert await service.is_subscription_active(running.id) is True
    assert await service.is_subscription_active(uuid4()) is False


@pytest.mark.asyncio
async def test_public_plans_exclude_enterprise_and_format_prices(test_db):
    plans = await SubscriptionService(test_db).list_plans()

    assert [plan.code for plan in plans] == ["FREE", "BASIC", "PRO"]
    displays = [plan_to_dict(plan)["price_display"] for plan in plans]
    assert displays == ["Free", "₹1,499/month", "₹3,999/month"]


def test_format_inr_uses_indian_grouping():
    assert format_inr(149900) == "₹1,499"
    assert format_inr(12345678900) == "₹12,34,56,789"
    assert format_inr(1050) == "₹10.50"
