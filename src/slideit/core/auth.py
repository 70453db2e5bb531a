# src/slideit/core/auth.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Dict

from fastapi import Header, HTTPException, status
import jwt

from slideit.core.config import settings


@dataclass
class Owner:
    id: str
    email: Optional[str] = None


def _parse_jwt_token(token: str) -> Dict:
    """
    Verify an RS256 token against JWT_PUBLIC_KEY and return its claims.
    """
    try:
        return jwt.decode(
            token,
            settings.JWT_PUBLIC_KEY,
            algorithms=["RS256"],
            options={"verify_aud": False},
        )
    except Exception as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Invalid token: {e}") from e


async def get_owner(
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    x_user_id: Optional[str] = Header(default=None, alias="X-User-Id"),
) -> Owner:
    """
    Resolve the requesting actor.

    DEV behavior (no JWT_PUBLIC_KEY): trust X-User-Id, else 'demo-user'.
    PROD behavior: require a Bearer token and take the owner from 'sub'/'user_id'.
    """
    if not settings.JWT_PUBLIC_KEY:
        return Owner(id=x_user_id or "demo-user")

    if not authorization:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth scheme (expected Bearer)")

    claims = _parse_jwt_token(token)
    user_id = claims.get("sub") or claims.get("user_id")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="No subject in token")

    return Owner(id=str(user_id), email=claims.get("email"))
