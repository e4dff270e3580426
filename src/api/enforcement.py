"""Subscription enforcement for tenant-facing routes.

Routers are mounted behind a :class:`SubscriptionGate`, and individual
endpoints can refine it with :func:`plan_requirements`::

    # limits.maxStudents comes from MODULE_REQUIREMENTS["/students"]
    include_tenant_router(app, students.router, prefix="/api/v1", count=count_students)

    @router.post("")
    @plan_requirements(count=count_students)
    async def create_student(...): ...

Gates run in order: identity, status, feature, limit.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
from uuid import UUID

from fastapi import APIRouter, Depends, FastAPI, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.deps import get_db_session
from src.auth.jwt import get_branch_id, optional_auth
from src.core.config import settings
from src.core.exceptions import (
    FEATURE_DISABLED,
    NO_SUBSCRIPTION,
    PLAN_LIMIT_EXCEEDED,
    SUBSCRIPTION_INACTIVE,
    EnforcementError,
)
from src.db.models.subscription import ACTIVE_STATUSES
from src.repositories.subscription_repo import SubscriptionRepo
from src.services.config_store import ConfigStore

logger = logging.getLogger(__name__)

CountResolver = Callable[[Request, AsyncSession], Awaitable[int]]

WRITE_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})
REQUIREMENTS_ATTR = "__plan_requirements__"


def inactive_allowed_prefixes() -> Tuple[str, ...]:
    """Paths a tenant with a lapsed subscription can still reach (to log in and pay)."""

    api = f"{settings.API_PREFIX}/v1"
    return (
        f"{api}/auth",
        f"{api}/billing",
        f"{api}/subscription",
        "/health",
        "/ready",
        "/metrics",
        f"{api}/observability",
    )


def is_allowed_when_inactive(path: str) -> bool:
    return any(path == prefix or path.startswith(prefix + "/") for prefix in inactive_allowed_prefixes())


@dataclass(frozen=True)
class PlanRequirements:
    feature: Optional[str] = None
    limit: Optional[str] = None
    count: Optional[CountResolver] = None


@dataclass(frozen=True)
class SubscriptionContext:
    tenant_id: UUID
    plan_code: str
    status: str


# Router prefix -> requirements applied when a module is mounted without
# explicit keys. Limit keys only take effect once the module supplies a count.
MODULE_REQUIREMENTS: Dict[str, PlanRequirements] = {
    "/fees": PlanRequirements(feature="fees.enabled"),
    "/transport": PlanRequirements(feature="transport.enabled"),
    "/library": PlanRequirements(feature="library.enabled"),
    "/attendance": PlanRequirements(feature="attendance.enabled"),
    "/exams": PlanRequirements(feature="exams.enabled"),
    "/timetable": PlanRequirements(feature="timetable.enabled"),
    "/reports": PlanRequirements(feature="reports.enabled"),
    "/communication": PlanRequirements(feature="communication.enabled"),
    "/students": PlanRequirements(limit="limits.maxStudents"),
    "/staff": PlanRequirements(limit="limits.maxStaff"),
    "/branches": PlanRequirements(limit="limits.maxBranches"),
}


def module_requirements(router_prefix: str) -> PlanRequirements:
    return MODULE_REQUIREMENTS.get(router_prefix.rstrip("/"), PlanRequirements())


def plan_requirements(
    *,
    feature: Optional[str] = None,
    limit: Optional[str] = None,
    count: Optional[CountResolver] = None,
) -> Callable:
    """Attach feature/limit requirements to an endpoint function."""

    def decorator(func: Callable) -> Callable:
        setattr(func, REQUIREMENTS_ATTR, PlanRequirements(feature, limit, count))
        return func

    return decorator


def _endpoint_requirements(request: Request) -> PlanRequirements:
    endpoint = request.scope.get("endpoint")
    return getattr(endpoint, REQUIREMENTS_ATTR, None) or PlanRequirements()


class SubscriptionGate:
    """FastAPI dependency enforcing subscription status, features and limits."""

    def __init__(
        self,
        feature_key: Optional[str] = None,
        limit_key: Optional[str] = None,
        count: Optional[CountResolver] = None,
    ) -> None:
        self.feature_key = feature_key
        self.limit_key = limit_key
        self.count = count

    async def __call__(
        self,
        request: Request,
        auth: Optional[Dict[str, Any]] = Depends(optional_auth),
        branch_id: Optional[UUID] = Depends(get_branch_id),
        db: AsyncSession = Depends(get_db_session),
    ) -> Optional[SubscriptionContext]:
        # Unauthenticated requests are left to the route's own auth checks.
        if auth is None:
            return None
        tenant_id: UUID = auth["tenant_id"]

        subscription = await SubscriptionRepo(db).get_with_plan(tenant_id)
        if subscription is None:
            logger.warning("Blocked request without subscription tenant=%s path=%s", tenant_id, request.url.path)
            raise EnforcementError("No active subscription found", code=NO_SUBSCRIPTION)

        context = SubscriptionContext(
            tenant_id=tenant_id,
            plan_code=subscription.plan.code if subscription.plan is not None else "",
            status=subscription.status,
        )

        if subscription.status not in ACTIVE_STATUSES:
            if not is_allowed_when_inactive(request.url.path):
                logger.info(
                    "Blocked request for %s subscription tenant=%s path=%s",
                    subscription.status,
                    tenant_id,
                    request.url.path,
                )
                raise EnforcementError(
                    f"Subscription is {subscription.status}. Please renew to continue.",
                    code=SUBSCRIPTION_INACTIVE,
                )
            request.state.subscription = context
            return context

        requirements = _endpoint_requirements(request)
        store = ConfigStore(db)

        feature = requirements.feature or self.feature_key
        if feature and not await store.is_feature_enabled(feature, tenant_id, branch_id):
            raise EnforcementError(
                f"Feature {feature} is not enabled for your plan",
                code=FEATURE_DISABLED,
            )

        if request.method in WRITE_METHODS:
            limit_key = requirements.limit or self.limit_key
            count = requirements.count or self.count
            if limit_key and count is not None:
                limit = await store.get_limit(limit_key, tenant_id, branch_id)
                current = await count(request, db)
                if current >= limit:
                    raise EnforcementError(
                        f"Plan limit reached for {limit_key} ({current}/{limit})",
                        code=PLAN_LIMIT_EXCEEDED,
                    )

        request.state.subscription = context
        return context


def include_tenant_router(
    app: FastAPI,
    router: APIRouter,
    *,
    prefix: str = "",
    feature_key: Optional[str] = None,
    limit_key: Optional[str] = None,
    count: Optional[CountResolver] = None,
) -> None:
    """Mount ``router`` behind a :class:`SubscriptionGate`.

    Keys not given here fall back to :data:`MODULE_REQUIREMENTS` for the
    router's own prefix.
    """

    defaults = module_requirements(router.prefix)
    gate = SubscriptionGate(
        feature_key or defaults.feature,
        limit_key or defaults.limit,
        count or defaults.count,
    )
    app.include_router(router, prefix=prefix, dependencies=[Depends(gate)])
