"""Ledger router: transactions, cohort assignment, balances."""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.dependencies import get_tenant_context
from tenant_ledger.auth.rbac import FEE_MANAGERS, FINANCE_READERS, require_roles
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType
from tenant_ledger.core.exceptions import ServiceError
from tenant_ledger.db.session import get_db

from .schemas import (
    BalanceReconciliation,
    BalanceResponse,
    CohortAssignmentRequest,
    CohortAssignmentResponse,
    FinancialRecordResponse,
    TransactionCreate,
    TransactionFilters,
    TransactionStatusUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/ledger", tags=["ledger"])


# --- Transactions ---
@router.post(
    "/transactions",
    response_model=FinancialRecordResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles("record transactions", FEE_MANAGERS))],
)
async def record_transaction(
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FinancialRecordResponse:
    try:
        return await service.record_transaction(db, context, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/transactions",
    response_model=List[FinancialRecordResponse],
)
async def list_transactions(
    student_id: Optional[UUID] = Query(None),
    type: Optional[FinancialRecordType] = Query(None),
    status_filter: Optional[FinancialRecordStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    tenant_id: Optional[UUID] = Query(None, description="Admin only: the tenant to read"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> List[FinancialRecordResponse]:
    filters = TransactionFilters(
        student_id=student_id,
        type=type,
        status=status_filter,
        date_from=date_from,
        date_to=date_to,
        tenant_id=tenant_id,
    )
    try:
        return await service.list_transactions(db, context, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/transactions/{record_id}/status",
    response_model=FinancialRecordResponse,
    dependencies=[Depends(require_roles("update transactions", FEE_MANAGERS))],
)
async def update_transaction_status(
    record_id: UUID,
    payload: TransactionStatusUpdate,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FinancialRecordResponse:
    try:
        return await service.update_status(db, context, record_id, payload.status)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


# --- Cohort assignment ---
@router.post(
    "/cohort-assignments",
    response_model=CohortAssignmentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles("assign fees", FEE_MANAGERS))],
)
async def assign_to_cohort(
    payload: CohortAssignmentRequest,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> CohortAssignmentResponse:
    """Not idempotent: posting the same cohort twice charges it twice."""
    try:
        count = await service.assign_to_cohort(db, context, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return CohortAssignmentResponse(fee_catalog_id=payload.fee_catalog_id, affected_students=count)


# --- Balance ---
@router.get(
    "/students/{student_id}/balance",
    response_model=BalanceResponse,
)
async def get_student_balance(
    student_id: UUID,
    tenant_id: Optional[UUID] = Query(None, description="Admin only: the tenant to read"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> BalanceResponse:
    try:
        return await service.compute_balance(db, context, student_id, tenant_id=tenant_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post(
    "/students/{student_id}/balance/reconcile",
    response_model=BalanceReconciliation,
    dependencies=[Depends(require_roles("reconcile balances", FINANCE_READERS))],
)
async def reconcile_student_balance(
    student_id: UUID,
    tenant_id: Optional[UUID] = Query(None, description="Admin only: the tenant to read"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> BalanceReconciliation:
    try:
        return await service.reconcile_balance(db, context, student_id, tenant_id=tenant_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
