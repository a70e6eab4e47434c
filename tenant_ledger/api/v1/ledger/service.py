"""
Ledger service: financial records, cohort billing, balances, status transitions.

Every write commits the record(s) and the matching balance-cache adjustment in one transaction,
then hands a best-effort entry to the audit log. Audit failures never fail the ledger write.
"""

import logging
import random
import time
import uuid
from typing import List, Optional
from uuid import UUID

from sqlalchemy import insert, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.api.v1.audit import service as audit_service
from tenant_ledger.api.v1.audit.details import FeeAssigned, TransactionRecorded, TransactionStatusUpdated
from tenant_ledger.api.v1.fee_catalog import service as fee_catalog_service
from tenant_ledger.auth.rbac import FEE_MANAGERS, FINANCE_READERS, STUDENT_SCOPED_READERS, authorize, scope_tenant
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core import student_directory
from tenant_ledger.core.clock import utc_today
from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType
from tenant_ledger.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from tenant_ledger.core.models import FinancialRecord
from tenant_ledger.core.money import to_decimal, validated_amount

from . import balance
from .schemas import (
    BalanceReconciliation,
    BalanceResponse,
    CohortAssignmentRequest,
    FinancialRecordResponse,
    TransactionCreate,
    TransactionFilters,
)

logger = logging.getLogger(__name__)

RECORD_NOT_FOUND = "Transaction not found"

# pending and overdue are open; completed and cancelled are terminal.
ALLOWED_TRANSITIONS = {
    FinancialRecordStatus.pending: {
        FinancialRecordStatus.completed,
        FinancialRecordStatus.overdue,
        FinancialRecordStatus.cancelled,
    },
    FinancialRecordStatus.overdue: {
        FinancialRecordStatus.completed,
        FinancialRecordStatus.cancelled,
    },
    FinancialRecordStatus.completed: set(),
    FinancialRecordStatus.cancelled: set(),
}

_AUDIT_ACTION_BY_TYPE = {
    FinancialRecordType.fee: "create_fee",
    FinancialRecordType.payment: "record_payment",
    FinancialRecordType.discount: "record_payment",
}


def _to_response(record: FinancialRecord) -> FinancialRecordResponse:
    return FinancialRecordResponse(
        id=record.id,
        tenant_id=record.tenant_id,
        student_id=record.student_id,
        type=record.type,
        amount=to_decimal(record.amount),
        description=record.description,
        status=record.status,
        date=record.date,
        invoice_number=record.invoice_number,
        payment_method=record.payment_method,
        fee_catalog_id=record.fee_catalog_id,
        created_by=record.created_by,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _default_status(record_type: FinancialRecordType) -> FinancialRecordStatus:
    if record_type == FinancialRecordType.fee:
        return FinancialRecordStatus.pending
    return FinancialRecordStatus.completed


def generate_invoice_number() -> str:
    """INV-<epoch ms>-<0..999>."""
    return f"INV-{int(time.time() * 1000)}-{random.randint(0, 999)}"


async def _authorize_student_read(db: AsyncSession, context: TenantContext, tenant_id: UUID, student_id: UUID) -> None:
    """Finance staff read any student in scope; students and parents only their linked record."""
    if context.role in FINANCE_READERS:
        return
    if context.role in STUDENT_SCOPED_READERS:
        if await student_directory.is_linked_to_student(db, tenant_id, context.actor_id, student_id):
            return
        raise NotFoundError("Student not found")
    raise ForbiddenError("Role may not read financial records")


# --- Transactions ---
async def record_transaction(
    db: AsyncSession,
    context: TenantContext,
    payload: TransactionCreate,
) -> FinancialRecordResponse:
    """Create one fee, payment or discount. An explicit amount overrides the catalog amount."""
    authorize(context, "record transactions", FEE_MANAGERS)
    tenant_id = context.tenant_id

    student = await student_directory.get_student_or_404(db, tenant_id, payload.student_id)
    catalog_entry = None
    if payload.fee_catalog_id is not None:
        catalog_entry = await fee_catalog_service.get_entry_or_404(db, tenant_id, payload.fee_catalog_id)

    if payload.amount is not None:
        amount = validated_amount(payload.amount)
    elif catalog_entry is not None:
        amount = validated_amount(catalog_entry.amount)
    else:
        raise ValidationFailed("Amount is required when no fee_catalog_id is given")

    record_type = payload.type
    if payload.payment_method is not None and record_type != FinancialRecordType.payment:
        raise ValidationFailed("payment_method applies to payments only")
    record_status = payload.status or _default_status(record_type)

    invoice_number = (payload.invoice_number or "").strip() or None
    if record_type == FinancialRecordType.payment and invoice_number is None:
        invoice_number = generate_invoice_number()

    description = (payload.description or "").strip() or None
    if description is None and catalog_entry is not None:
        description = catalog_entry.name

    record = FinancialRecord(
        tenant_id=tenant_id,
        student_id=student.id,
        type=record_type.value,
        amount=amount,
        description=description,
        status=record_status.value,
        date=payload.date or utc_today(),
        invoice_number=invoice_number,
        payment_method=payload.payment_method.value if payload.payment_method else None,
        fee_catalog_id=catalog_entry.id if catalog_entry is not None else None,
        created_by=context.actor_id,
    )
    try:
        db.add(record)
        await db.flush()
        if record_status != FinancialRecordStatus.cancelled:
            await balance.apply_to_cache(db, tenant_id, [student.id], record_type, amount)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(record)
    response = _to_response(record)

    await audit_service.record(
        db, context, _AUDIT_ACTION_BY_TYPE[record_type], "financial_record", response.id,
        TransactionRecorded(amount=response.amount, type=record_type, student_id=response.student_id),
    )
    return response


async def list_transactions(
    db: AsyncSession,
    context: TenantContext,
    filters: Optional[TransactionFilters] = None,
) -> List[FinancialRecordResponse]:
    """Newest first. Always filtered by tenant; Admin must name the tenant to read another one."""
    filters = filters or TransactionFilters()
    tenant_id = scope_tenant(context, filters.tenant_id)

    stmt = select(FinancialRecord).where(FinancialRecord.tenant_id == tenant_id)
    if context.role in STUDENT_SCOPED_READERS:
        linked = await student_directory.linked_student_ids(db, tenant_id, context.actor_id)
        stmt = stmt.where(FinancialRecord.student_id.in_(linked))
    else:
        authorize(context, "read transactions", FINANCE_READERS)

    if filters.student_id is not None:
        stmt = stmt.where(FinancialRecord.student_id == filters.student_id)
    if filters.type is not None:
        stmt = stmt.where(FinancialRecord.type == filters.type.value)
    if filters.status is not None:
        stmt = stmt.where(FinancialRecord.status == filters.status.value)
    if filters.date_from is not None:
        stmt = stmt.where(FinancialRecord.date >= filters.date_from)
    if filters.date_to is not None:
        stmt = stmt.where(FinancialRecord.date <= filters.date_to)
    stmt = stmt.order_by(FinancialRecord.date.desc(), FinancialRecord.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(r) for r in result.scalars().all()]


async def update_status(
    db: AsyncSession,
    context: TenantContext,
    record_id: UUID,
    new_status: FinancialRecordStatus,
) -> FinancialRecordResponse:
    """Move a record along pending -> completed/overdue/cancelled. Re-applying the same status is a no-op."""
    authorize(context, "update transactions", FEE_MANAGERS)
    tenant_id = context.tenant_id
    result = await db.execute(
        select(FinancialRecord).where(
            FinancialRecord.id == record_id,
            FinancialRecord.tenant_id == tenant_id,
        )
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError(RECORD_NOT_FOUND)

    old_status = FinancialRecordStatus(record.status)
    if old_status == new_status:
        return _to_response(record)
    if new_status not in ALLOWED_TRANSITIONS[old_status]:
        raise ConflictError(f"Cannot change status from {old_status.value} to {new_status.value}")

    try:
        # Guarded on the old status so two concurrent cancels adjust the cache only once.
        moved = await db.execute(
            update(FinancialRecord)
            .where(
                FinancialRecord.id == record.id,
                FinancialRecord.tenant_id == tenant_id,
                FinancialRecord.status == old_status.value,
            )
            .values(status=new_status.value)
            .execution_options(synchronize_session=False)
        )
        if moved.rowcount != 1:
            raise ConflictError("Transaction status was changed concurrently; reload and retry")
        if new_status == FinancialRecordStatus.cancelled:
            await balance.apply_to_cache(
                db, tenant_id, [record.student_id], FinancialRecordType(record.type), -to_decimal(record.amount)
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(record)
    response = _to_response(record)

    await audit_service.record(
        db, context, "update_transaction_status", "financial_record", response.id,
        TransactionStatusUpdated(student_id=response.student_id, from_status=old_status, to_status=new_status),
    )
    return response


# --- Cohort assignment ---
async def _insert_cohort_charges(db: AsyncSession, rows: List[dict]) -> None:
    # One executemany for the whole cohort.
    await db.execute(insert(FinancialRecord), rows)


async def assign_to_cohort(
    db: AsyncSession,
    context: TenantContext,
    payload: CohortAssignmentRequest,
) -> int:
    """
    Charge a catalog fee to every student in a classroom, or in a grade+level, as one transaction.

    Either every resolved student gets exactly one pending fee record or none does. Calling this
    twice with the same parameters bills the cohort twice: re-billing (next month's tuition) is a
    valid operation and nothing is deduplicated. Returns the number of students charged.
    """
    authorize(context, "assign fees", FEE_MANAGERS)
    tenant_id = context.tenant_id
    student_directory.validate_cohort_filter(payload.classroom_id, payload.grade, payload.level)
    entry = await fee_catalog_service.get_entry_or_404(db, tenant_id, payload.fee_catalog_id)
    amount = validated_amount(entry.amount)

    try:
        student_ids = await student_directory.resolve_cohort(
            db, tenant_id, classroom_id=payload.classroom_id, grade=payload.grade, level=payload.level
        )
        if student_ids:
            today = utc_today()
            rows = [
                {
                    "id": uuid.uuid4(),
                    "tenant_id": tenant_id,
                    "student_id": student_id,
                    "type": FinancialRecordType.fee.value,
                    "amount": amount,
                    "description": entry.name,
                    "status": FinancialRecordStatus.pending.value,
                    "date": today,
                    "fee_catalog_id": entry.id,
                    "created_by": context.actor_id,
                }
                for student_id in student_ids
            ]
            await _insert_cohort_charges(db, rows)
            await balance.apply_to_cache(db, tenant_id, student_ids, FinancialRecordType.fee, amount)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    count = len(student_ids)
    logger.info("Assigned fee %s to %d students in tenant %s", entry.id, count, tenant_id)
    await audit_service.record(
        db, context, "assign_fee", "fee_structure", payload.fee_catalog_id,
        FeeAssigned(
            classroom_id=payload.classroom_id,
            grade=None if payload.classroom_id else payload.grade,
            level=None if payload.classroom_id else payload.level,
            affected_students=count,
        ),
    )
    return count


# --- Balance ---
async def compute_balance(
    db: AsyncSession,
    context: TenantContext,
    student_id: UUID,
    tenant_id: Optional[UUID] = None,
) -> BalanceResponse:
    """fees - payments - discounts over the student's non-cancelled records. Never reads the cache."""
    scoped_tenant = scope_tenant(context, tenant_id)
    await _authorize_student_read(db, context, scoped_tenant, student_id)
    await student_directory.get_student_or_404(db, scoped_tenant, student_id)

    totals = await balance.aggregate_balance(db, scoped_tenant, student_id)
    return BalanceResponse(
        student_id=student_id,
        fees_total=totals.fees_total,
        payments_total=totals.payments_total,
        discounts_total=totals.discounts_total,
        balance=totals.balance,
    )


async def reconcile_balance(
    db: AsyncSession,
    context: TenantContext,
    student_id: UUID,
    tenant_id: Optional[UUID] = None,
) -> BalanceReconciliation:
    """Compare the cached totals with the full scan; rewrite the cache when they differ."""
    authorize(context, "reconcile balances", FINANCE_READERS)
    scoped_tenant = scope_tenant(context, tenant_id)
    await student_directory.get_student_or_404(db, scoped_tenant, student_id)

    computed = await balance.aggregate_balance(db, scoped_tenant, student_id)
    cached = await balance.read_cache(db, scoped_tenant, student_id)
    in_sync = balance.totals_equal(cached, computed)
    if not in_sync:
        logger.warning(
            "Balance cache drift for student %s in tenant %s: cached=%s computed=%s",
            student_id,
            scoped_tenant,
            cached.model_dump(),
            computed.model_dump(),
        )
        try:
            await balance.write_cache(db, scoped_tenant, student_id, computed)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
    return BalanceReconciliation(student_id=student_id, cached=cached, computed=computed, in_sync=in_sync)
