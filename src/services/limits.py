"""Rate limiting and idempotency helpers."""
from __future__ import annotations

import time
from typing import Optional
from uuid import UUID

import redis.asyncio as redis
from fastapi import HTTPException, status

from src.core.config import settings
from src.services.config_store import ConfigStore

_redis_client: redis.Redis | None = None


async def _get_client() -> redis.Redis:
    """Return a cached Redis client instance."""

    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            str(settings.REDIS_URI), decode_responses=True
        )
    return _redis_client


async def check_rate_limit(tenant_id: str, per_minute: Optional[int] = None) -> None:
    """Enforce a simple fixed-window rate limit per tenant."""

    if not settings.limits.rate_limit_enabled:
        return
    limit = per_minute if per_minute is not None else settings.RATE_LIMIT_RPM
    client = await _get_client()
    minute_window = int(time.time() // 60)
    key = f"rl:{tenant_id}:{minute_window}"
    current = await client.incr(key)
    if current == 1:
        await client.expire(key, 60)
    if current > limit:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded",
        )


async def enforce_tenant_rate_limit(store: ConfigStore, tenant_id: UUID) -> None:
    """Apply the tenant's own ``rate.limit.*`` settings."""

    if not await store.is_feature_enabled("rate.limit.enabled", tenant_id):
        return
    per_minute = await store.get_limit("rate.limit.tenant.perMinute", tenant_id)
    await check_rate_limit(str(tenant_id), int(per_minute) or settings.RATE_LIMIT_RPM)


async def ensure_idempotent(tenant_id: str, key: Optional[str]) -> None:
    """Reject duplicate POST requests sharing the same idempotency key."""

    if not key:
        return
    client = await _get_client()
    redis_key = f"idemp:{tenant_id}:{key}"
    was_set = await client.set(
        redis_key, "1", ex=settings.limits.idempotency_ttl_seconds, nx=True
    )
    if not was_set:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Duplicate request (idempotency)",
        )
