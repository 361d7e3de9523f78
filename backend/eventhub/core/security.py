"""
Bearer-token identity resolution.

Sign-up, login and sessions belong to the external auth service; this module
only verifies the JWT it issues and exposes the caller's id and role to the
route layer.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from eventhub.core.config import get_settings
from eventhub.core.exceptions import AdminRequired, AuthenticationRequired
from eventhub.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

bearer_scheme = HTTPBearer(auto_error=False)

ROLE_ADMIN = "admin"
ROLE_ATTENDEE = "attendee"


@dataclass(frozen=True)
class Identity:
    user_id: int
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_access_token(token: str) -> Identity:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        return Identity(
            user_id=int(payload["sub"]),
            role=str(payload.get("role", ROLE_ATTENDEE)),
        )
    except (jwt.PyJWTError, KeyError, ValueError) as e:
        logger.warning("token_rejected", error=str(e))
        raise AuthenticationRequired()


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Identity:
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequired()
    identity = decode_access_token(credentials.credentials)
    # every later log line of this request carries the actor
    structlog.contextvars.bind_contextvars(actor_id=identity.user_id, actor_role=identity.role)
    return identity


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    if not identity.is_admin:
        logger.warning("admin_required", user_id=identity.user_id, role=identity.role)
        raise AdminRequired()
    return identity
