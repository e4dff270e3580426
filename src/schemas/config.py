"""Pydantic schemas for configuration endpoints."""
from __future__ import annotations

from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.db.models.config_entry import ConfigScope

ConfigValueField = Union[bool, int, float, str]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ConfigUpdate(CamelModel):
    key: str = Field(..., min_length=1, description="Whitelisted config key")
    value: ConfigValueField = Field(..., description="New value, typed per key")
    scope: ConfigScope = Field(default=ConfigScope.TENANT)


class ConfigItem(CamelModel):
    key: str = Field(..., min_length=1)
    value: ConfigValueField


class ConfigBatchUpdate(CamelModel):
    configs: List[ConfigItem] = Field(..., min_length=1, max_length=50)
    scope: ConfigScope = Field(default=ConfigScope.TENANT)


class ConfigEntryRead(CamelModel):
    key: str
    value: ConfigValueField
    type: str
    scope: str
    branch_id: Optional[UUID] = None
    updated_by: Optional[str] = None


class ResolvedConfigRead(CamelModel):
    key: str
    value: ConfigValueField
    type: str
    source: str
    default: ConfigValueField
    tenant_value: Optional[ConfigValueField] = None
    branch_override: Optional[ConfigValueField] = None


class ConfigScopeRead(CamelModel):
    tenant_id: UUID
    branch_id: Optional[UUID] = None


class ResolvedConfigList(CamelModel):
    configs: List[ResolvedConfigRead]
    scope: ConfigScopeRead
