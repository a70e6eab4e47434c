"""Read-side aggregation for finance dashboards. No writes, no audit."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.api.v1.ledger import balance
from tenant_ledger.auth.rbac import FINANCE_READERS, authorize, scope_tenant
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.clock import utc_today
from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType
from tenant_ledger.core.models import FinancialRecord, Student
from tenant_ledger.core.money import to_money

from .schemas import FinancialStats, OutstandingBalanceItem


def _sum_where(condition):
    return func.coalesce(func.sum(case((condition, FinancialRecord.amount), else_=0)), 0)


async def get_financial_stats(
    db: AsyncSession,
    context: TenantContext,
    tenant_id: Optional[UUID] = None,
) -> FinancialStats:
    """Revenue is completed payments; pending and overdue are open fee amounts."""
    authorize(context, "read financial statistics", FINANCE_READERS)
    scoped_tenant = scope_tenant(context, tenant_id)
    month_start = utc_today().replace(day=1)

    is_payment = FinancialRecord.type == FinancialRecordType.payment.value
    is_fee = FinancialRecord.type == FinancialRecordType.fee.value
    is_completed = FinancialRecord.status == FinancialRecordStatus.completed.value

    stmt = select(
        _sum_where(and_(is_payment, is_completed)),
        _sum_where(and_(is_fee, FinancialRecord.status == FinancialRecordStatus.pending.value)),
        _sum_where(and_(is_fee, FinancialRecord.status == FinancialRecordStatus.overdue.value)),
        _sum_where(and_(is_payment, is_completed, FinancialRecord.date >= month_start)),
    ).where(FinancialRecord.tenant_id == scoped_tenant)
    revenue, pending, overdue, monthly = (await db.execute(stmt)).one()
    return FinancialStats(
        total_revenue=to_money(revenue),
        total_pending=to_money(pending),
        total_overdue=to_money(overdue),
        monthly_revenue=to_money(monthly),
    )


async def list_outstanding_balances(
    db: AsyncSession,
    context: TenantContext,
    classroom_id: Optional[UUID] = None,
    tenant_id: Optional[UUID] = None,
) -> List[OutstandingBalanceItem]:
    """Students owing money, largest balance first. Same aggregation as the per-student balance."""
    authorize(context, "read balances", FINANCE_READERS)
    scoped_tenant = scope_tenant(context, tenant_id)

    stmt = select(Student).where(Student.tenant_id == scoped_tenant)
    if classroom_id is not None:
        stmt = stmt.where(Student.classroom_id == classroom_id)
    students = {s.id: s for s in (await db.execute(stmt)).scalars().all()}
    if not students:
        return []

    totals = await balance.aggregate_balances(db, scoped_tenant, list(students))
    items = [
        OutstandingBalanceItem(
            student_id=student_id,
            full_name=students[student_id].full_name,
            classroom_id=students[student_id].classroom_id,
            balance=t.balance,
        )
        for student_id, t in totals.items()
        if t.balance > 0
    ]
    items.sort(key=lambda i: (-i.balance, i.full_name))
    return items
