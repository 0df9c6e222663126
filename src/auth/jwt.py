"""Simple JWT authentication helpers."""
from __future__ import annotations

from typing import Any, Dict

import jwt
from fastapi import Depends, Header, HTTPException, status

from src.core.config import settings


def require_auth(authorization: str = Header(...)) -> Dict[str, Any]:
    """Validate a bearer token and return the caller's business and role."""

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

    role = str(payload.get("role") or "owner")
    business_id = payload.get("business_id")
    if business_id is not None:
        try:
            business_id = int(business_id)
        except (TypeError, ValueError) as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid business identifier",
            ) from exc

    is_operator = role == settings.billing.admin_role
    if business_id is None and not is_operator:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Business missing in token",
        )

    return {
        "business_id": business_id,
        "role": role,
        "is_operator": is_operator,
        "claims": payload,
    }


def require_admin(auth: Dict[str, Any] = Depends(require_auth)) -> Dict[str, Any]:
    """Allow only platform operators through."""

    if not auth["is_operator"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Operator role required",
        )
    return auth
