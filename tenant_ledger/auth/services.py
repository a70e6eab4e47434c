"""
Tenant context resolution: bearer token -> TenantContext{tenant_id, actor_id, role}.

The only state kept here is a short-lived per-token cache; resolution itself has no side effects.
"""

import time
from typing import Dict, Optional, Tuple
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.models import Actor
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.auth.security import decode_access_token
from tenant_ledger.core.config import settings
from tenant_ledger.core.enums import ActorRole
from tenant_ledger.core.exceptions import UnauthenticatedError


class ContextCache:
    """
    Token -> (expires_at, context). Entries live for ttl_seconds on the monotonic clock,
    and never past the token's own expiry.
    """

    def __init__(self, ttl_seconds: int, max_entries: int = 1024) -> None:
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._entries: Dict[str, Tuple[float, TenantContext]] = {}

    def get(self, token: str) -> Optional[TenantContext]:
        if self.ttl_seconds <= 0:
            return None
        hit = self._entries.get(token)
        if hit is None:
            return None
        expires_at, context = hit
        if expires_at <= time.monotonic():
            self._entries.pop(token, None)
            return None
        return context

    def put(self, token: str, context: TenantContext, token_exp: Optional[float] = None) -> None:
        """Cache for ttl_seconds, or until token_exp (epoch seconds) when that comes first."""
        if self.ttl_seconds <= 0:
            return
        now = time.monotonic()
        lifetime = float(self.ttl_seconds)
        if token_exp is not None:
            lifetime = min(lifetime, token_exp - time.time())
            if lifetime <= 0:
                return
        if len(self._entries) >= self.max_entries:
            self._entries = {k: v for k, v in self._entries.items() if v[0] > now}
            if len(self._entries) >= self.max_entries:
                self._entries.clear()
        self._entries[token] = (now + lifetime, context)

    def clear(self) -> None:
        self._entries.clear()


context_cache = ContextCache(settings.context_cache_ttl_seconds)


async def resolve(db: AsyncSession, token: str) -> TenantContext:
    """Resolve the acting user and tenant from an access token. Raises UnauthenticatedError."""
    cached = context_cache.get(token)
    if cached is not None:
        return cached

    payload = decode_access_token(token)
    if payload is None:
        raise UnauthenticatedError()

    actor_id_str = payload.get("user_id") or payload.get("sub")
    tenant_id_str = payload.get("tenant_id")
    if not actor_id_str or not tenant_id_str:
        raise UnauthenticatedError()

    try:
        actor_id = UUID(actor_id_str)
        tenant_id = UUID(tenant_id_str)
    except ValueError:
        raise UnauthenticatedError()

    result = await db.execute(
        select(Actor).where(Actor.id == actor_id, Actor.tenant_id == tenant_id)
    )
    actor = result.scalar_one_or_none()
    if not actor or actor.status != "ACTIVE":
        raise UnauthenticatedError()

    try:
        role = ActorRole(actor.role)
    except ValueError:
        raise UnauthenticatedError()

    context = TenantContext(tenant_id=actor.tenant_id, actor_id=actor.id, role=role)
    context_cache.put(token, context, token_exp=payload.get("exp"))
    return context
