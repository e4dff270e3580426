import pytest
from fastapi import status

from tests.helpers import API_PREFIX, build_auth_header, seed_tenant


@pytest.mark.asyncio
async def test_create_tenant_starts_free_trial(client):
    response = await client.post(f"{API_PREFIX}/tenants/create", params={"name": "Riverdale High"})

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["plan_code"] == "FREE"
    assert body["status"] == "trialing"
    assert body["trial_days_remaining"] == 14
    assert body["trial_ends_at"] is not None


@pytest.mark.asyncio
async def test_create_tenant_requires_name(client):
    response = await client.post(f"{API_PREFIX}/tenants/create")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


@pytest.mark.asyncio
async def test_current_subscription_is_camel_case(client):
    created = await client.post(f"{API_PREFIX}/tenants/create", params={"name": "Riverdale High"})
    tenant_id = created.json()["tenant_id"]

    response = await client.get(
        f"{API_PREFIX}/subscription/current", headers=build_auth_header(tenant_id)
    )

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert body["tenantId"] == tenant_id
    assert body["status"] == "trialing"
    assert body["isActive"] is True
    assert body["trialDaysRemaining"] == 14
    assert body["plan"]["code"] == "FREE"
    assert body["plan"]["priceDisplay"] == "Free"


@pytest.mark.asyncio
async def test_plan_catalog_hides_private_plans(client, test_db):
    tenant, _ = await seed_tenant(test_db)

    response = await client.get(
        f"{API_PREFIX}/subscription/plans", headers=build_auth_header(tenant.id, permissions=[])
    )

    assert response.status_code == status.HTTP_200_OK
    plans = response.json()
    assert [plan["code"] for plan in plans] == ["FREE", "BASIC", "PRO"]
    basic = plans[1]
    assert basic["priceMonthly"] == 149900
    assert basic["priceDisplay"] == "₹1,499/month"


@pytest.mark.asyncio
async def test_change_plan_applies_new_plan_configs(client, test_db):
    tenant, _ = await seed_tenant(test_db)
    headers = build_auth_header(tenant.id)

    changed = await client.post(
        f"{API_PREFIX}/subscription/change-plan", json={"planCode": "PRO"}, headers=headers
    )
    assert changed.status_code == status.HTTP_200_OK, changed.text
    assert changed.json()["status"] == "active"
    assert changed.json()["plan"]["code"] == "PRO"
    assert changed.json()["trialEndsAt"] is None

    timetable = await client.get(f"{API_PREFIX}/config/timetable.enabled", headers=headers)
    assert timetable.json()["value"] is True
    assert timetable.json()["source"] == "tenant"


@pytest.mark.asyncio
async def test_change_plan_requires_permission_and_known_plan(client, test_db):
    tenant, _ = await seed_tenant(test_db)
    tenant_id = tenant.id

    forbidden = await client.post(
        f"{API_PREFIX}/subscription/change-plan",
        json={"planCode": "PRO"},
        headers=build_auth_header(tenant_id, permissions=["subscription:read"]),
    )
    assert forbidden.status_code == status.HTTP_403_FORBIDDEN

    unknown = await client.post(
        f"{API_PREFIX}/subscription/change-plan",
        json={"planCode": "PLATINUM"},
        headers=build_auth_header(tenant_id),
    )
    assert unknown.status_code == status.HTTP_404_NOT_FOUND
    assert unknown.json()["code"] == "PLAN_NOT_FOUND"
