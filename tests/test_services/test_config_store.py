from uuid import uuid4

import pytest

from src.core.exceptions import BadRequestError, InvalidConfigKeyError, InvalidConfigValueError
from src.services.config_store import ConfigStore
from tests.helpers import config_rows, seed_tenant


@pytest.mark.asyncio
async def test_resolution_precedence_branch_then_tenant_then_default(test_db):
    tenant, _ = await seed_tenant(test_db)
    branch_id = uuid4()
    other_branch = uuid4()
    store = ConfigStore(test_db)

    await store.upsert(tenant.id, "limits.maxStudents", 50, "TENANT", "admin")
    await store.upsert(tenant.id, "limits.maxStudents", 20, "BRANCH", "admin", branch_id=branch_id)
    await test_db.commit()

    at_branch = await store.resolve("limits.maxStudents", tenant.id, branch_id)
    assert at_branch.value == 20
    assert at_branch.source == "branch"
    assert at_branch.tenant_value == 50

    at_other_branch = await store.resolve("limits.maxStudents", tenant.id, other_branch)
    assert at_other_branch.value == 50
    assert at_other_branch.source == "tenant"

    untouched = await store.resolve("limits.maxStaff", tenant.id)
    assert untouched.value == 100
    assert untouched.source == "default"


@pytest.mark.asyncio
async def test_tenant_rows_do_not_leak_between_tenants(test_db):
    tenant_a, _ = await seed_tenant(test_db)
    tenant_b, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)

    await store.upsert(tenant_a.id, "fees.enabled", False, "TENANT", "admin")
    await test_db.commit()

    assert await store.is_feature_enabled("fees.enabled", tenant_a.id) is False
    assert await store.is_feature_enabled("fees.enabled", tenant_b.id) is True


@pytest.mark.asyncio
async def test_unknown_key_writes_nothing(test_db):
    tenant, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)

    with pytest.raises(InvalidConfigKeyError):
        await store.upsert(tenant.id, "fees.bogus", True, "TENANT", "admin")

    assert await config_rows(test_db, tenant.id) == []


@pytest.mark.asyncio
async def test_resolve_unknown_key_raises_instead_of_defaulting(test_db):
    tenant, _ = await seed_tenant(test_db)
    with pytest.raises(InvalidConfigKeyError):
        await ConfigStore(test_db).resolve("nope.enabled", tenant.id)


@pytest.mark.asyncio
async def test_branch_scope_requires_branch_id(test_db):
    tenant, _ = await seed_tenant(test_db)
    with pytest.raises(BadRequestError):
        await ConfigStore(test_db).upsert(tenant.id, "fees.enabled", True, "BRANCH", "admin")


@pytest.mark.asyncio
async def test_repeated_upsert_updates_single_row(test_db):
    tenant, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)

    await store.upsert(tenant.id, "limits.maxStudents", 50, "TENANT", "admin")
    entry = await store.upsert(tenant.id, "limits.maxStudents", 75, "TENANT", "owner")
    await test_db.commit()

    rows = await config_rows(test_db, tenant.id)
    assert len(rows) == 1
    assert entry.config_value == "75"
    assert entry.updated_by == "owner"


@pytest.mark.asyncio
async def test_batch_is_validated_before_any_write(test_db):
    tenant, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)

    with pytest.raises(InvalidConfigValueError):
        await store.batch_upsert(
            tenant.id,
            [("fees.enabled", False), ("limits.maxStudents", "lots")],
            updated_by="admin",
        )

    assert await config_rows(test_db, tenant.id) == []


@pytest.mark.asyncio
async def test_batch_writes_all_items(test_db):
    tenant, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)

    entries = await store.batch_upsert(
        tenant.id,
        [("fees.enabled", False), ("limits.maxStudents", 50)],
        updated_by="admin",
    )
    await test_db.commit()

    assert {entry.config_key for entry in entries} == {"fees.enabled", "limits.maxStudents"}
    assert await store.get_limit("limits.maxStudents", tenant.id) == 50


@pytest.mark.asyncio
async def test_list_resolved_filters_by_prefix_and_reports_sources(test_db):
    tenant, _ = await seed_tenant(test_db)
    store = ConfigStore(test_db)
    await store.upsert(tenant.id, "limits.maxStaff", 10, "TENANT", "admin")
    await test_db.commit()

    resolved = await store.list_resolved(tenant.id, prefix="limits.")

    keys = [entry.key for entry in resolved.entries]
    assert keys and all(key.startswith("limits.") for key in keys)
    by_key = {entry.key: entry for entry in resolved.entries}
    assert by_key["limits.maxStaff"].source == "tenant"
    assert by_key["limits.maxBranches"].source == "default"
    assert resolved.tenant_id == tenant.id
