"""Plan catalog constants and the plan -> config writer."""
from __future__ import annotations

import enum
import logging
from typing import Dict, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.db.models.config_entry import ConfigScope
from src.services.config_store import ConfigStore

logger = logging.getLogger(__name__)


class PlanCode(str, enum.Enum):
    FREE = "FREE"
    BASIC = "BASIC"
    PRO = "PRO"
    ENTERPRISE = "ENTERPRISE"


TRIAL_DURATION_DAYS = 14
TRIAL_PLAN = PlanCode.FREE

# Monthly prices in paise. ENTERPRISE is priced by sales and cannot be ordered.
PLAN_PRICING: Dict[str, int] = {
    PlanCode.FREE.value: 0,
    PlanCode.BASIC.value: 149900,
    PlanCode.PRO.value: 399900,
    PlanCode.ENTERPRISE.value: 0,
}

PLAN_SEED = [
    {
        "code": PlanCode.FREE.value,
        "name": "Free",
        "description": "Get started with basic features. Perfect for trying out the platform.",
        "price_monthly": PLAN_PRICING[PlanCode.FREE.value],
        "is_active": True,
        "is_public": True,
        "display_order": 1,
    },
    {
        "code": PlanCode.BASIC.value,
        "name": "Basic",
        "description": "Essential features for small schools. Includes fees, transport, and library.",
        "price_monthly": PLAN_PRICING[PlanCode.BASIC.value],
        "is_active": True,
        "is_public": True,
        "display_order": 2,
    },
    {
        "code": PlanCode.PRO.value,
        "name": "Pro",
        "description": "Advanced features for growing schools. Includes all modules and priority support.",
        "price_monthly": PLAN_PRICING[PlanCode.PRO.value],
        "is_active": True,
        "is_public": True,
        "display_order": 3,
    },
    {
        "code": PlanCode.ENTERPRISE.value,
        "name": "Enterprise",
        "description": "Custom solutions for large institutions. Contact sales for pricing.",
        "price_monthly": PLAN_PRICING[PlanCode.ENTERPRISE.value],
        "is_active": True,
        "is_public": False,
        "display_order": 4,
    },
]

PLAN_CONFIGS: Dict[str, Dict[str, Union[bool, int, str]]] = {
    PlanCode.FREE.value: {
        "fees.enabled": False,
        "transport.enabled": False,
        "library.enabled": False,
        "reports.enabled": False,
        "limits.maxStudents": 50,
        "limits.maxStaff": 10,
        "limits.maxBranches": 1,
        "limits.storageGb": 1,
    },
    PlanCode.BASIC.value: {
        "fees.enabled": True,
        "transport.enabled": True,
        "library.enabled": True,
        "reports.enabled": True,
        "limits.maxStudents": 300,
        "limits.maxStaff": 30,
        "limits.maxBranches": 2,
        "limits.storageGb": 5,
    },
    PlanCode.PRO.value: {
        "fees.enabled": True,
        "transport.enabled": True,
        "library.enabled": True,
        "reports.enabled": True,
        "timetable.enabled": True,
        "limits.maxStudents": 1000,
        "limits.maxStaff": 100,
        "limits.maxBranches": 5,
        "limits.storageGb": 25,
    },
    PlanCode.ENTERPRISE.value: {
        "fees.enabled": True,
        "transport.enabled": True,
        "library.enabled": True,
        "reports.enabled": True,
        "timetable.enabled": True,
        "limits.maxStudents": 10000,
        "limits.maxStaff": 500,
        "limits.maxBranches": 50,
        "limits.storageGb": 100,
    },
}


class PlanConfigApplier:
    """Writes a plan's feature flags and limits as tenant-wide config."""

    def __init__(self, session: AsyncSession) -> None:
        self.store = ConfigStore(session)

    async def apply(self, tenant_id: UUID, plan_code: str, actor: str = "system") -> bool:
        """Apply ``plan_code`` to ``tenant_id``; returns whether anything was written.

        Failures are logged and not raised: the plan change that triggered
        this call has already happened and must not be undone by it.
        """

        configs = PLAN_CONFIGS.get(plan_code)
        if not configs:
            logger.warning("No config defaults found for plan %s", plan_code)
            return False

        try:
            await self.store.batch_upsert(
                tenant_id,
                list(configs.items()),
                scope=ConfigScope.TENANT.value,
                updated_by=actor,
            )
        except Exception:
            logger.exception(
                "Failed to apply plan configs for tenant %s plan %s", tenant_id, plan_code
            )
            return False

        logger.info(
            "Applied %d configs for plan %s to tenant %s", len(configs), plan_code, tenant_id
        )
        return True
