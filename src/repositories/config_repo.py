"""Repository helpers for tenant/branch configuration rows."""
from __future__ import annotations

import uuid
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.config_entry import ConfigEntry, ConfigScope


class ConfigRepo:
    """Data-access helpers for :class:`ConfigEntry`."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        raise NotImplementedError(f"Config upsert is not supported on {dialect}")

    async def get_entry(
        self, tenant_id: UUID, key: str, branch_id: Optional[UUID] = None
    ) -> ConfigEntry | None:
        query = select(ConfigEntry).where(
            ConfigEntry.tenant_id == tenant_id,
            ConfigEntry.config_key == key,
        )
        if branch_id is None:
            query = query.where(ConfigEntry.branch_id.is_(None))
        else:
            query = query.where(ConfigEntry.branch_id == branch_id)
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def get_for_key(
        self, tenant_id: UUID, key: str, branch_id: Optional[UUID] = None
    ) -> list[ConfigEntry]:
        """Return the tenant row and, when asked, the branch row for ``key``."""

        scope_filter = ConfigEntry.branch_id.is_(None)
        if branch_id is not None:
            scope_filter = or_(scope_filter, ConfigEntry.branch_id == branch_id)
        result = await self.session.execute(
            select(ConfigEntry)
            .where(
                ConfigEntry.tenant_id == tenant_id,
                ConfigEntry.config_key == key,
                scope_filter,
            )
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_for_tenant(
        self, tenant_id: UUID, branch_id: Optional[UUID] = None
    ) -> list[ConfigEntry]:
        scope_filter = ConfigEntry.branch_id.is_(None)
        if branch_id is not None:
            scope_filter = or_(scope_filter, ConfigEntry.branch_id == branch_id)
        result = await self.session.execute(
            select(ConfigEntry)
            .where(ConfigEntry.tenant_id == tenant_id, scope_filter)
            .order_by(ConfigEntry.config_key)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def upsert(
        self,
        tenant_id: UUID,
        key: str,
        raw_value: str,
        value_type: str,
        updated_by: Optional[str],
        branch_id: Optional[UUID] = None,
    ) -> ConfigEntry:
        """Insert or update a single row in one statement.

        The conflict target is whichever partial unique index matches the
        row's scope, so concurrent writers never produce duplicates.
        """

        scope = ConfigScope.TENANT.value if branch_id is None else ConfigScope.BRANCH.value
        stmt = self._insert()(ConfigEntry).values(
            id=uuid.uuid4(),
            tenant_id=tenant_id,
            config_key=key,
            config_value=raw_value,
            value_type=value_type,
            scope=scope,
            branch_id=branch_id,
            updated_by=updated_by,
        )
        if branch_id is None:
            index_elements = [ConfigEntry.tenant_id, ConfigEntry.config_key]
            index_where = ConfigEntry.branch_id.is_(None)
        else:
            index_elements = [ConfigEntry.tenant_id, ConfigEntry.config_key, ConfigEntry.branch_id]
            index_where = ConfigEntry.branch_id.is_not(None)

        stmt = stmt.on_conflict_do_update(
            index_elements=index_elements,
            index_where=index_where,
            set_={
                "config_value": stmt.excluded.config_value,
                "value_type": stmt.excluded.value_type,
                "updated_by": stmt.excluded.updated_by,
                "updated_at": func.now(),
            },
        )
        await self.session.execute(stmt)

        entry = await self.get_entry(tenant_id, key, branch_id)
        if entry is None:  # pragma: no cover - the upsert guarantees a row
            raise RuntimeError(f"Config row for {key} vanished after upsert")
        return entry
