"""Tenant and branch scoped configuration rows."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import Base


class ConfigScope(str, enum.Enum):
    TENANT = "TENANT"
    BRANCH = "BRANCH"


class ConfigEntry(Base):
    """A stored override for one whitelisted key.

    A row is either tenant wide (``branch_id`` is NULL) or a branch override.
    Rows are never deleted; absence of a row means "use the default".
    """

    __tablename__ = "config_entries"
    __table_args__ = (
        CheckConstraint(
            "(scope = 'TENANT' AND branch_id IS NULL) OR "
            "(scope = 'BRANCH' AND branch_id IS NOT NULL)",
            name="ck_config_entries_scope_branch",
        ),
        Index(
            "uq_config_entries_tenant_key",
            "tenant_id",
            "config_key",
            unique=True,
            postgresql_where=text("branch_id IS NULL"),
            sqlite_where=text("branch_id IS NULL"),
        ),
        Index(
            "uq_config_entries_branch_key",
            "tenant_id",
            "config_key",
            "branch_id",
            unique=True,
            postgresql_where=text("branch_id IS NOT NULL"),
            sqlite_where=text("branch_id IS NOT NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    tenant_id: Mapped[uuid.UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True
    )
    config_key: Mapped[str] = mapped_column(String(100), nullable=False)
    config_value: Mapped[str] = mapped_column(Text, nullable=False)
    value_type: Mapped[str] = mapped_column(String(20), nullable=False)
    scope: Mapped[str] = mapped_column(String(10), nullable=False, default=ConfigScope.TENANT.value)
    branch_id: Mapped[uuid.UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ConfigEntry {self.config_key}={self.config_value} scope={self.scope}>"
