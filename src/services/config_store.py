"""Typed configuration lookups with branch -> tenant -> default precedence."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import BadRequestError
from src.db.models.config_entry import ConfigEntry, ConfigScope
from src.repositories.config_repo import ConfigRepo
from src.services.config_keys import (
    CONFIG_KEYS,
    ConfigValue,
    coerce_value,
    get_key_spec,
    parse_value,
    serialize_value,
)

logger = logging.getLogger(__name__)

SOURCE_BRANCH = "branch"
SOURCE_TENANT = "tenant"
SOURCE_DEFAULT = "default"


@dataclass
class ResolvedConfig:
    key: str
    value: ConfigValue
    value_type: str
    source: str
    default: ConfigValue
    tenant_value: Optional[ConfigValue] = None
    branch_override: Optional[ConfigValue] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "type": self.value_type,
            "source": self.source,
            "default": self.default,
            "tenantValue": self.tenant_value,
            "branchOverride": self.branch_override,
        }


@dataclass
class ResolvedConfigList:
    tenant_id: UUID
    branch_id: Optional[UUID]
    entries: list[ResolvedConfig] = field(default_factory=list)


def _pick(key: str, rows: Iterable[ConfigEntry]) -> ResolvedConfig:
    spec = get_key_spec(key)
    tenant_value: Optional[ConfigValue] = None
    branch_value: Optional[ConfigValue] = None
    for row in rows:
        parsed = parse_value(row.config_value, spec.value_type)
        if row.branch_id is None:
            tenant_value = parsed
        else:
            branch_value = parsed

    if branch_value is not None:
        value, source = branch_value, SOURCE_BRANCH
    elif tenant_value is not None:
        value, source = tenant_value, SOURCE_TENANT
    else:
        value, source = spec.default, SOURCE_DEFAULT

    return ResolvedConfig(
        key=key,
        value=value,
        value_type=spec.value_type,
        source=source,
        default=spec.default,
        tenant_value=tenant_value,
        branch_override=branch_value,
    )


class ConfigStore:
    """Whitelisted key-value store consulted by enforcement and modules."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repo = ConfigRepo(session)

    async def resolve(
        self, key: str, tenant_id: UUID, branch_id: Optional[UUID] = None
    ) -> ResolvedConfig:
        get_key_spec(key)
        rows = await self.repo.get_for_key(tenant_id, key, branch_id)
        return _pick(key, rows)

    async def get_value(
        self, key: str, tenant_id: UUID, branch_id: Optional[UUID] = None
    ) -> ConfigValue:
        return (await self.resolve(key, tenant_id, branch_id)).value

    async def is_feature_enabled(
        self, key: str, tenant_id: UUID, branch_id: Optional[UUID] = None
    ) -> bool:
        return (await self.get_value(key, tenant_id, branch_id)) is True

    async def get_limit(
        self, key: str, tenant_id: UUID, branch_id: Optional[UUID] = None
    ) -> int | float:
        value = await self.get_value(key, tenant_id, branch_id)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return 0
        return value

    async def list_resolved(
        self,
        tenant_id: UUID,
        branch_id: Optional[UUID] = None,
        prefix: Optional[str] = None,
    ) -> ResolvedConfigList:
        rows = await self.repo.list_for_tenant(tenant_id, branch_id)
        by_key: dict[str, list[ConfigEntry]] = {}
        for row in rows:
            by_key.setdefault(row.config_key, []).append(row)

        entries = [
            _pick(key, by_key.get(key, ()))
            for key in CONFIG_KEYS
            if prefix is None or key.startswith(prefix)
        ]
        return ResolvedConfigList(tenant_id=tenant_id, branch_id=branch_id, entries=entries)

    @staticmethod
    def _scope_branch(scope: str, branch_id: Optional[UUID]) -> Optional[UUID]:
        if scope == ConfigScope.BRANCH.value:
            if branch_id is None:
                raise BadRequestError("Branch ID required for branch-scoped config")
            return branch_id
        if scope != ConfigScope.TENANT.value:
            raise BadRequestError(f"Invalid scope: {scope}")
        return None

    async def upsert(
        self,
        tenant_id: UUID,
        key: str,
        value: Any,
        scope: str = ConfigScope.TENANT.value,
        updated_by: Optional[str] = None,
        branch_id: Optional[UUID] = None,
    ) -> ConfigEntry:
        target_branch = self._scope_branch(scope, branch_id)
        spec = get_key_spec(key)
        typed = coerce_value(key, value)

        entry = await self.repo.upsert(
            tenant_id,
            key,
            serialize_value(typed),
            spec.value_type,
            updated_by,
            target_branch,
        )
        logger.info(
            "Config updated tenant=%s key=%s scope=%s branch=%s by=%s",
            tenant_id,
            key,
            scope,
            target_branch,
            updated_by,
        )
        return entry

    async def batch_upsert(
        self,
        tenant_id: UUID,
        items: Sequence[Tuple[str, Any]],
        scope: str = ConfigScope.TENANT.value,
        updated_by: Optional[str] = None,
        branch_id: Optional[UUID] = None,
    ) -> list[ConfigEntry]:
        """Validate every item, then write them all inside one savepoint."""

        target_branch = self._scope_branch(scope, branch_id)
        prepared = []
        for key, value in items:
            spec = get_key_spec(key)
            prepared.append((key, serialize_value(coerce_value(key, value)), spec.value_type))

        entries: list[ConfigEntry] = []
        async with self.session.begin_nested():
            for key, raw, value_type in prepared:
                entries.append(
                    await self.repo.upsert(
                        tenant_id, key, raw, value_type, updated_by, target_branch
                    )
                )
        logger.info(
            "Config batch updated tenant=%s keys=%s scope=%s branch=%s by=%s",
            tenant_id,
            [key for key, _, _ in prepared],
            scope,
            target_branch,
            updated_by,
        )
        return entries
