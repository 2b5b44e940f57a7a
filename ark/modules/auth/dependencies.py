"""JWT authentication for the admin back office.

Admin endpoints require a Bearer token signed with ``settings.jwt_secret_key``
whose claims carry ``sub`` (admin id), ``email`` and ``role``. Public quote
submission and the payments webhook do not use this dependency.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from ark.config import settings
from ark.exceptions import ForbiddenException, UnauthorizedException

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

ADMIN_ROLES = {"admin", "owner", "dispatcher"}


@dataclass
class AuthenticatedAdmin:
    """The admin user extracted from a JWT token."""

    id: uuid.UUID
    email: str
    role: str = "admin"
    name: str | None = None


def create_access_token(
    admin_id: uuid.UUID,
    email: str,
    role: str = "admin",
    name: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes or settings.jwt_expiry_minutes)
    claims = {
        "sub": str(admin_id),
        "email": email,
        "role": role,
        "exp": expire,
    }
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_current_admin(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedAdmin:
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)
    try:
        admin = AuthenticatedAdmin(
            id=uuid.UUID(payload["sub"]),
            email=payload["email"],
            role=payload.get("role", "admin"),
            name=payload.get("name"),
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    if admin.role not in ADMIN_ROLES:
        raise ForbiddenException("Admin access required")

    request.state.admin = admin
    return admin
