from typing import Iterable, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, status

from tenant_ledger.auth.dependencies import get_tenant_context
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.enums import ActorRole
from tenant_ledger.core.exceptions import ForbiddenError

FEE_MANAGERS = frozenset({ActorRole.TEACHER, ActorRole.SECRETARY})
FINANCE_READERS = frozenset({ActorRole.TEACHER, ActorRole.SECRETARY, ActorRole.ADMIN})
STUDENT_SCOPED_READERS = frozenset({ActorRole.STUDENT, ActorRole.PARENT})
AUDIT_READERS = frozenset({ActorRole.TEACHER, ActorRole.ADMIN})
ALL_ROLES = frozenset(ActorRole)


def authorize(context: TenantContext, action: str, role_set: Iterable[ActorRole]) -> None:
    """Raise ForbiddenError unless the context's role is in role_set. Call before any mutation."""
    if context is None:
        raise ForbiddenError(f"Not allowed to {action}")
    if context.role not in frozenset(role_set):
        raise ForbiddenError(f"Role {context.role.value} may not {action}")


def scope_tenant(context: TenantContext, requested_tenant_id: Optional[UUID] = None) -> UUID:
    """
    Tenant a read applies to. Defaults to the context tenant; only Admin may name
    another tenant, and must do so explicitly.
    """
    if requested_tenant_id is None or requested_tenant_id == context.tenant_id:
        return context.tenant_id
    if not context.is_admin:
        raise ForbiddenError("Cross-tenant access is not allowed")
    return requested_tenant_id


def require_roles(action: str, role_set: Iterable[ActorRole]):
    """
    Dependency factory to enforce a role set on an endpoint.

    Example:
        Depends(require_roles("create fees", FEE_MANAGERS))
    """
    allowed = frozenset(role_set)

    async def _checker(context: TenantContext = Depends(get_tenant_context)) -> None:
        if context.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )

    return _checker
