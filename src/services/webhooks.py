"""Payment webhook handling; the only code path that activates a paid plan."""
from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.exceptions import AMOUNT_MISMATCH, INVALID_SIGNATURE, PAYMENT_NOT_FOUND
from src.db.models.payment import PaymentStatus
from src.repositories.payment_repo import PAYABLE_STATUSES, PaymentRepo
from src.repositories.plan_repo import PlanRepo
from src.repositories.subscription_repo import SubscriptionRepo
from src.services.plan_configs import PlanConfigApplier

logger = logging.getLogger(__name__)

EVENT_PAYMENT_CAPTURED = "payment.captured"
EVENT_PAYMENT_FAILED = "payment.failed"
HANDLED_EVENTS = frozenset({EVENT_PAYMENT_CAPTURED, EVENT_PAYMENT_FAILED})

MSG_INVALID_PAYLOAD = "Invalid payload"
MSG_EVENT_IGNORED = "Event ignored"
MSG_ALREADY_PROCESSED = "Already processed"
MSG_PAYMENT_PROCESSED = "Payment processed"
MSG_FAILURE_RECORDED = "Payment failure recorded"
MSG_MISSING_ENTITY = "Missing payment entity"
MSG_SUBSCRIPTION_NOT_FOUND = "Subscription not found"
MSG_PLAN_NOT_FOUND = "Plan not found"


@dataclass(frozen=True)
class WebhookResult:
    success: bool
    message: str
    processed: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def compute_signature(raw_body: bytes, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time HMAC-SHA256 check over the exact bytes received."""

    if not secret:
        logger.error("Webhook secret is not configured; rejecting webhook")
        return False
    if not signature:
        return False
    expected = compute_signature(raw_body, secret).encode("ascii")
    received = signature.strip().encode("utf-8", "surrogateescape")
    return hmac.compare_digest(expected, received)


def _payment_entity(event: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    payload = event.get("payload")
    if not isinstance(payload, dict):
        return None
    payment = payload.get("payment")
    if not isinstance(payment, dict):
        return None
    entity = payment.get("entity")
    return entity if isinstance(entity, dict) else None


def _amount_matches(received: Any, expected: int) -> bool:
    """Numeric equality in paise; 149900.0 matches 149900, booleans never do."""

    if isinstance(received, bool) or not isinstance(received, (int, float)):
        return False
    return received == expected


class WebhookProcessor:
    def __init__(
        self,
        session: AsyncSession,
        *,
        payments: Optional[PaymentRepo] = None,
        subscriptions: Optional[SubscriptionRepo] = None,
        plans: Optional[PlanRepo] = None,
        applier: Optional[PlanConfigApplier] = None,
        secret: Optional[str] = None,
    ) -> None:
        self.session = session
        self.payments = payments if payments is not None else PaymentRepo(session)
        self.subscriptions = subscriptions if subscriptions is not None else SubscriptionRepo(session)
        self.plans = plans if plans is not None else PlanRepo(session)
        self.applier = applier if applier is not None else PlanConfigApplier(session)
        self._secret = secret

    @property
    def secret(self) -> Optional[str]:
        return self._secret if self._secret is not None else settings.RAZORPAY_WEBHOOK_SECRET

    async def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookResult:
        if not verify_signature(raw_body, signature, self.secret):
            logger.warning("Webhook rejected: invalid signature")
            return WebhookResult(False, INVALID_SIGNATURE)

        try:
            event = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return WebhookResult(False, MSG_INVALID_PAYLOAD)
        if not isinstance(event, dict):
            return WebhookResult(False, MSG_INVALID_PAYLOAD)

        event_type = event.get("event")
        if event_type not in HANDLED_EVENTS:
            logger.info("Webhook event ignored: %s", event_type)
            return WebhookResult(True, MSG_EVENT_IGNORED)

        entity = _payment_entity(event)
        if entity is None:
            return WebhookResult(False, MSG_MISSING_ENTITY)

        if event_type == EVENT_PAYMENT_CAPTURED:
            return await self._handle_captured(entity)
        return await self._handle_failed(entity)

    async def _handle_captured(self, entity: Dict[str, Any]) -> WebhookResult:
        order_id = entity.get("order_id")
        payment_id = entity.get("id")
        amount = entity.get("amount")

        payment = await self.payments.get_by_provider_order_id(order_id) if order_id else None
        if payment is None:
            logger.warning("Captured webhook for unknown order %s", order_id)
            return WebhookResult(False, PAYMENT_NOT_FOUND)

        if payment.status not in PAYABLE_STATUSES:
            logger.info("Payment for order %s already %s", order_id, payment.status)
            return WebhookResult(True, MSG_ALREADY_PROCESSED)

        if not _amount_matches(amount, payment.amount):
            logger.error(
                "Amount mismatch for order %s: expected %s, got %s",
                order_id,
                payment.amount,
                amount,
            )
            await self.payments.mark_failed(
                order_id,
                payment_id,
                AMOUNT_MISMATCH,
                {**(payment.meta or {}), "expected_amount": payment.amount, "received_amount": amount},
            )
            return WebhookResult(False, AMOUNT_MISMATCH)

        # A concurrent delivery may have paid the order since the read above.
        if not await self.payments.mark_paid(order_id, payment_id):
            logger.info("Payment for order %s was processed concurrently", order_id)
            return WebhookResult(True, MSG_ALREADY_PROCESSED)

        subscription = await self.subscriptions.get_by_id(payment.subscription_id)
        if subscription is None:
            logger.error("Subscription %s missing for paid order %s", payment.subscription_id, order_id)
            return WebhookResult(False, MSG_SUBSCRIPTION_NOT_FOUND)

        plan = await self.plans.get(payment.plan_id)
        if plan is None:
            logger.error("Plan %s missing for paid order %s", payment.plan_id, order_id)
            return WebhookResult(False, MSG_PLAN_NOT_FOUND)

        await self.subscriptions.activate(subscription, plan)
        await self.applier.apply(payment.tenant_id, plan.code, actor="webhook")

        logger.info(
            "Subscription activated via webhook: tenant=%s plan=%s order=%s",
            payment.tenant_id,
            plan.code,
            order_id,
        )
        return WebhookResult(True, MSG_PAYMENT_PROCESSED, processed=True)

    async def _handle_failed(self, entity: Dict[str, Any]) -> WebhookResult:
        order_id = entity.get("order_id")
        payment = await self.payments.get_by_provider_order_id(order_id) if order_id else None
        if payment is None:
            logger.warning("Failed webhook for unknown order %s", order_id)
            return WebhookResult(False, PAYMENT_NOT_FOUND)

        if payment.status != PaymentStatus.CREATED.value:
            return WebhookResult(True, MSG_ALREADY_PROCESSED)

        reason = entity.get("error_description")
        changed = await self.payments.mark_failed(
            order_id, entity.get("id"), reason, dict(payment.meta or {})
        )
        if not changed:
            return WebhookResult(True, MSG_ALREADY_PROCESSED)

        logger.info("Payment failed for order %s: %s", order_id, reason)
        return WebhookResult(True, MSG_FAILURE_RECORDED, processed=True)
