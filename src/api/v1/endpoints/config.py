"""Endpoints for reading and updating tenant/branch configuration."""
from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import get_branch_id, require_permission
from src.db.models.config_entry import ConfigEntry
from src.schemas.config import (
    ConfigBatchUpdate,
    ConfigEntryRead,
    ConfigScopeRead,
    ConfigUpdate,
    ResolvedConfigList,
    ResolvedConfigRead,
)
from src.services.config_keys import parse_value
from src.services.config_store import ConfigStore
from src.services.limits import enforce_tenant_rate_limit


router = APIRouter(prefix="/config", tags=["config"])


def _entry_read(entry: ConfigEntry) -> ConfigEntryRead:
    return ConfigEntryRead(
        key=entry.config_key,
        value=parse_value(entry.config_value, entry.value_type),
        type=entry.value_type,
        scope=entry.scope,
        branch_id=entry.branch_id,
        updated_by=entry.updated_by,
    )


@router.get("", response_model=ResolvedConfigList)
async def list_configs(
    prefix: Optional[str] = Query(default=None, description="Only keys starting with this"),
    auth=Depends(require_permission("config:read")),
    branch_id: Optional[UUID] = Depends(get_branch_id),
    db: AsyncSession = Depends(get_db_session),
):
    resolved = await ConfigStore(db).list_resolved(auth["tenant_id"], branch_id, prefix)
    return ResolvedConfigList(
        configs=[ResolvedConfigRead(**entry.as_dict()) for entry in resolved.entries],
        scope=ConfigScopeRead(tenant_id=resolved.tenant_id, branch_id=resolved.branch_id),
    )


@router.get("/{key}", response_model=ResolvedConfigRead)
async def get_config(
    key: str,
    auth=Depends(require_permission("config:read")),
    branch_id: Optional[UUID] = Depends(get_branch_id),
    db: AsyncSession = Depends(get_db_session),
):
    resolved = await ConfigStore(db).resolve(key, auth["tenant_id"], branch_id)
    return ResolvedConfigRead(**resolved.as_dict())


@router.patch("", response_model=ConfigEntryRead)
async def update_config(
    body: ConfigUpdate,
    auth=Depends(require_permission("config:update")),
    branch_id: Optional[UUID] = Depends(get_branch_id),
    db: AsyncSession = Depends(get_db_session),
):
    store = ConfigStore(db)
    await enforce_tenant_rate_limit(store, auth["tenant_id"])
    entry = await store.upsert(
        auth["tenant_id"],
        body.key,
        body.value,
        scope=body.scope.value,
        updated_by=auth["user_id"],
        branch_id=branch_id,
    )
    return _entry_read(entry)


@router.patch("/batch", response_model=list[ConfigEntryRead])
async def batch_update_config(
    body: ConfigBatchUpdate,
    auth=Depends(require_permission("config:update")),
    branch_id: Optional[UUID] = Depends(get_branch_id),
    db: AsyncSession = Depends(get_db_session),
):
    store = ConfigStore(db)
    await enforce_tenant_rate_limit(store, auth["tenant_id"])
    entries = await store.batch_upsert(
        auth["tenant_id"],
        [(item.key, item.value) for item in body.configs],
        scope=body.scope.value,
        updated_by=auth["user_id"],
        branch_id=branch_id,
    )
    return [_entry_read(entry) for entry in entries]
