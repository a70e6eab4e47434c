"""
Audit log service: append-only activity trail with best-effort writes.

record() is called by every mutating component after its own commit. It never raises: a failed
audit write is rolled back, logged, and reported as AuditOutcome.DEGRADED so the caller's primary
result still stands. Lost entries are not retried.
"""

import logging
from typing import Any, List, Mapping, Optional, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.models import Actor
from tenant_ledger.auth.rbac import AUDIT_READERS, authorize, scope_tenant
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.config import settings
from tenant_ledger.core.enums import AuditOutcome
from tenant_ledger.core.exceptions import ValidationFailed
from tenant_ledger.core.models import AuditEntry

from .details import AUDIT_DETAIL_SCHEMAS, AuditDetails
from .schemas import AuditEntryResponse, AuditQuery

logger = logging.getLogger(__name__)


def validate_details(action_type: str, details: Union[AuditDetails, Mapping[str, Any], None]) -> dict:
    """Check details against the schema registered for action_type; return the JSON-ready dict."""
    schema = AUDIT_DETAIL_SCHEMAS.get(action_type)
    if schema is None:
        raise ValidationFailed(f"Unknown audit action type: {action_type}")
    if isinstance(details, schema):
        model = details
    else:
        if isinstance(details, AuditDetails):
            details = details.model_dump()
        try:
            model = schema.model_validate(dict(details or {}))
        except ValidationError as e:
            raise ValidationFailed(f"Invalid details for {action_type}: {e.error_count()} error(s)")
    return model.model_dump(mode="json", exclude_none=True)


async def record(
    db: AsyncSession,
    context: TenantContext,
    action_type: str,
    entity_type: str,
    entity_id: Optional[UUID],
    details: Union[AuditDetails, Mapping[str, Any], None] = None,
) -> AuditOutcome:
    """Append one audit entry in its own commit. Call only after the primary write has committed."""
    try:
        payload = validate_details(action_type, details)
        db.add(
            AuditEntry(
                tenant_id=context.tenant_id,
                actor_id=context.actor_id,
                action_type=action_type,
                entity_type=entity_type,
                entity_id=entity_id,
                details=payload,
            )
        )
        await db.commit()
    except Exception:
        await _discard(db)
        logger.warning(
            "Audit write degraded: action=%s entity=%s:%s tenant=%s actor=%s",
            action_type,
            entity_type,
            entity_id,
            context.tenant_id,
            context.actor_id,
            exc_info=True,
        )
        return AuditOutcome.DEGRADED
    return AuditOutcome.OK


async def _discard(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except SQLAlchemyError:
        logger.error("Rollback after failed audit write also failed", exc_info=True)


def _entry_to_response(entry: AuditEntry, actor_name: Optional[str], actor_role: Optional[str]) -> AuditEntryResponse:
    return AuditEntryResponse(
        id=entry.id,
        tenant_id=entry.tenant_id,
        actor_id=entry.actor_id,
        actor_name=actor_name,
        actor_role=actor_role,
        action_type=entry.action_type,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        details=entry.details or {},
        created_at=entry.created_at,
    )


async def query(
    db: AsyncSession,
    context: TenantContext,
    filters: Optional[AuditQuery] = None,
) -> List[AuditEntryResponse]:
    """Newest-first audit entries. Scoped to the caller's tenant unless the caller is Admin."""
    authorize(context, "read the audit log", AUDIT_READERS)
    filters = filters or AuditQuery()

    stmt = select(AuditEntry, Actor.full_name, Actor.role).outerjoin(Actor, AuditEntry.actor_id == Actor.id)
    if context.is_admin:
        if filters.tenant_id is not None:
            stmt = stmt.where(AuditEntry.tenant_id == filters.tenant_id)
    else:
        stmt = stmt.where(AuditEntry.tenant_id == scope_tenant(context, filters.tenant_id))

    if filters.role is not None:
        stmt = stmt.where(Actor.role == filters.role.value)
    if filters.action_type:
        stmt = stmt.where(AuditEntry.action_type == filters.action_type)
    if filters.entity_type:
        stmt = stmt.where(AuditEntry.entity_type == filters.entity_type)
    if filters.date_from is not None:
        stmt = stmt.where(AuditEntry.created_at >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(AuditEntry.created_at <= filters.date_to)

    limit = min(filters.limit or settings.audit_query_default_limit, settings.audit_query_max_limit)
    stmt = stmt.order_by(AuditEntry.created_at.desc()).limit(limit)
    result = await db.execute(stmt)
    return [_entry_to_response(entry, name, role) for entry, name, role in result.all()]
