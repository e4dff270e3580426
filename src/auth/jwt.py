"""Simple JWT authentication helpers."""
from __future__ import annotations

from typing import Any, Callable, Dict, Optional
from uuid import UUID

import jwt
from fastapi import Depends, Header, HTTPException, status

from src.core.config import settings


def decode_token(authorization: Optional[str]) -> Dict[str, Any]:
    """Validate a bearer token and return decoded claims."""

    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
        )

    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
        )
    except jwt.InvalidTokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
        ) from exc

    if "tenant_id" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Tenant missing in token",
        )

    try:
        tenant_uuid = UUID(str(payload["tenant_id"]))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid tenant identifier",
        ) from exc

    branch_uuid = None
    if payload.get("branch_id"):
        try:
            branch_uuid = UUID(str(payload["branch_id"]))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid branch identifier",
            ) from exc

    payload["tenant_id"] = str(tenant_uuid)
    return {
        "tenant_id": tenant_uuid,
        "branch_id": branch_uuid,
        "user_id": payload.get("sub"),
        "permissions": set(payload.get("permissions") or ()),
        "claims": payload,
    }


def require_auth(authorization: str = Header(...)) -> Dict[str, Any]:
    return decode_token(authorization)


def optional_auth(authorization: Optional[str] = Header(default=None)) -> Optional[Dict[str, Any]]:
    """Return claims when a usable bearer token is present, otherwise ``None``."""

    if not authorization:
        return None
    try:
        return decode_token(authorization)
    except HTTPException:
        return None


def require_permission(permission: str) -> Callable[..., Dict[str, Any]]:
    """Dependency factory enforcing that the token grants ``permission``."""

    def _checker(auth: Dict[str, Any] = Depends(require_auth)) -> Dict[str, Any]:
        if permission not in auth["permissions"]:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permission: {permission}",
            )
        return auth

    return _checker


def get_branch_id(
    x_branch_id: Optional[str] = Header(default=None),
    auth: Optional[Dict[str, Any]] = Depends(optional_auth),
) -> Optional[UUID]:
    """Branch context from ``X-Branch-Id``, falling back to the token claim.

    Unauthenticated requests carry no branch context; the header is ignored.
    """

    if auth is None:
        return None
    if x_branch_id:
        try:
            return UUID(x_branch_id)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid X-Branch-Id header",
            ) from exc
    return auth["branch_id"]
