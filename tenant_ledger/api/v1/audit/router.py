"""Audit router: append entries for components outside the ledger, query the trail."""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.dependencies import get_tenant_context
from tenant_ledger.auth.rbac import ALL_ROLES, AUDIT_READERS, require_roles
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.enums import ActorRole, AuditOutcome
from tenant_ledger.core.exceptions import ServiceError
from tenant_ledger.db.session import get_db

from .schemas import AuditEntryCreate, AuditEntryResponse, AuditQuery, AuditRecordResponse
from . import service

router = APIRouter(prefix="/api/v1/audit", tags=["audit"])


@router.post(
    "",
    response_model=AuditRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles("write audit entries", ALL_ROLES))],
)
async def record_audit_entry(
    payload: AuditEntryCreate,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> AuditRecordResponse:
    # Here the audit write is the primary action, so bad details are the caller's error.
    try:
        service.validate_details(payload.action_type, payload.details)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    outcome = await service.record(
        db,
        context,
        payload.action_type,
        payload.entity_type,
        payload.entity_id,
        payload.details,
    )
    if outcome == AuditOutcome.DEGRADED:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Audit log is degraded; entry was not stored",
        )
    return AuditRecordResponse(status=outcome)


@router.get(
    "",
    response_model=List[AuditEntryResponse],
    dependencies=[Depends(require_roles("read the audit log", AUDIT_READERS))],
)
async def query_audit_entries(
    role: Optional[ActorRole] = Query(None, description="Only actions performed by actors with this role"),
    action_type: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    limit: Optional[int] = Query(None, ge=1),
    tenant_id: Optional[UUID] = Query(None, description="Admin only: restrict to one tenant"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> List[AuditEntryResponse]:
    filters = AuditQuery(
        role=role,
        action_type=action_type,
        entity_type=entity_type,
        date_from=date_from,
        date_to=date_to,
        limit=limit,
        tenant_id=tenant_id,
    )
    try:
        return await service.query(db, context, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
