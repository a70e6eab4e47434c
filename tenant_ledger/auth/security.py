from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from tenant_ledger.core.config import settings


def create_access_token(
    *, subject: Dict, expires_minutes: Optional[int] = None
) -> str:
    if expires_minutes is None:
        expires_minutes = settings.access_token_expire_minutes

    to_encode = subject.copy()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    to_encode.update({"exp": expire})
    encoded_jwt = jwt.encode(
        to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm
    )
    return encoded_jwt


def create_actor_token(actor, expires_minutes: Optional[int] = None) -> str:
    """Token in the shape the identity provider issues: sub = actor id, plus tenant and role claims."""
    return create_access_token(
        subject={
            "sub": str(actor.id),
            "tenant_id": str(actor.tenant_id),
            "role": actor.role,
        },
        expires_minutes=expires_minutes,
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Return the token claims, or None when the signature or expiry is invalid."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        return None
