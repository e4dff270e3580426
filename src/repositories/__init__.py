"""Repository layer package."""

from src.repositories.config_repo import ConfigRepo
from src.repositories.payment_repo import PaymentRepo
from src.repositories.plan_repo import PlanRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.repositories.tenant_repo import TenantRepo

__all__ = [
    "ConfigRepo",
    "PaymentRepo",
    "PlanRepo",
    "SubscriptionRepo",
    "TenantRepo",
]
