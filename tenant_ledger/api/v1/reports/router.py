"""Reports router: dashboard aggregates over the ledger."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.dependencies import get_tenant_context
from tenant_ledger.auth.rbac import FINANCE_READERS, require_roles
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.exceptions import ServiceError
from tenant_ledger.db.session import get_db

from .schemas import FinancialStats, OutstandingBalanceItem
from . import service

router = APIRouter(
    prefix="/api/v1/reports",
    tags=["reports"],
    dependencies=[Depends(require_roles("read financial reports", FINANCE_READERS))],
)


@router.get("/financial-stats", response_model=FinancialStats)
async def get_financial_stats(
    tenant_id: Optional[UUID] = Query(None, description="Admin only: the tenant to read"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FinancialStats:
    try:
        return await service.get_financial_stats(db, context, tenant_id=tenant_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/outstanding-balances", response_model=List[OutstandingBalanceItem])
async def list_outstanding_balances(
    classroom_id: Optional[UUID] = Query(None),
    tenant_id: Optional[UUID] = Query(None, description="Admin only: the tenant to read"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> List[OutstandingBalanceItem]:
    try:
        return await service.list_outstanding_balances(
            db, context, classroom_id=classroom_id, tenant_id=tenant_id
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
