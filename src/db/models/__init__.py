"""Database models package exports."""

from src.db.models.config_entry import ConfigEntry, ConfigScope
from src.db.models.payment import Payment, PaymentStatus
from src.db.models.plan import Plan
from src.db.models.subscription import Subscription, SubscriptionStatus
from src.db.models.tenant import Tenant

__all__ = [
    "ConfigEntry",
    "ConfigScope",
    "Payment",
    "PaymentStatus",
    "Plan",
    "Subscription",
    "SubscriptionStatus",
    "Tenant",
]
