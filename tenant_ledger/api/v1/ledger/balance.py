"""
Balance aggregation and the student_balances cache.

The full scan over financial_records is authoritative. The cache is adjusted inside the same
transaction as every ledger write and can be checked against the scan at any time.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.core.clock import utcnow
from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType
from tenant_ledger.core.models import FinancialRecord, StudentBalance
from tenant_ledger.core.money import to_decimal, to_money

from .schemas import BalanceTotals

_TOTAL_FIELDS = {
    FinancialRecordType.fee.value: "fees_total",
    FinancialRecordType.payment.value: "payments_total",
    FinancialRecordType.discount.value: "discounts_total",
}

# Rows per multi-VALUES upsert; keeps bind parameters under the PostgreSQL limit
_UPSERT_CHUNK = 1000


def _counted():
    return FinancialRecord.status != FinancialRecordStatus.cancelled.value


async def aggregate_balance(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> BalanceTotals:
    """Sum non-cancelled records per type for one student."""
    totals = await aggregate_balances(db, tenant_id, [student_id])
    return totals.get(student_id, BalanceTotals())


async def aggregate_balances(
    db: AsyncSession,
    tenant_id: UUID,
    student_ids: Optional[Iterable[UUID]] = None,
) -> Dict[UUID, BalanceTotals]:
    """Per-student totals over non-cancelled records. Students without records are absent."""
    stmt = (
        select(
            FinancialRecord.student_id,
            FinancialRecord.type,
            func.coalesce(func.sum(FinancialRecord.amount), 0),
        )
        .where(FinancialRecord.tenant_id == tenant_id, _counted())
        .group_by(FinancialRecord.student_id, FinancialRecord.type)
    )
    if student_ids is not None:
        stmt = stmt.where(FinancialRecord.student_id.in_(list(student_ids)))
    result = await db.execute(stmt)

    out: Dict[UUID, BalanceTotals] = {}
    for student_id, record_type, total in result.all():
        totals = out.setdefault(student_id, BalanceTotals())
        setattr(totals, _TOTAL_FIELDS[record_type], to_money(total))
    return out


async def read_cache(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> BalanceTotals:
    result = await db.execute(
        select(StudentBalance).where(
            StudentBalance.student_id == student_id,
            StudentBalance.tenant_id == tenant_id,
        )
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        return BalanceTotals()
    return BalanceTotals(
        fees_total=to_money(row.fees_total),
        payments_total=to_money(row.payments_total),
        discounts_total=to_money(row.discounts_total),
    )


def _dialect_insert(db: AsyncSession):
    """INSERT construct with ON CONFLICT support for the bound database."""
    if db.get_bind().dialect.name == "sqlite":
        return sqlite_insert
    return pg_insert


async def apply_to_cache(
    db: AsyncSession,
    tenant_id: UUID,
    student_ids: List[UUID],
    record_type: FinancialRecordType,
    delta: Decimal,
) -> None:
    """
    Add delta to one total for every student in a single upsert. Missing cache rows are created
    and existing ones get col = col + delta, so concurrent writers neither lose increments nor
    collide on the primary key. Caller owns the transaction.
    """
    if not student_ids:
        return
    field = _TOTAL_FIELDS[FinancialRecordType(record_type).value]
    now = utcnow()

    rows = []
    for sid in student_ids:
        row = {
            "student_id": sid,
            "tenant_id": tenant_id,
            "fees_total": Decimal("0"),
            "payments_total": Decimal("0"),
            "discounts_total": Decimal("0"),
            "updated_at": now,
        }
        row[field] = delta
        rows.append(row)

    table = StudentBalance.__table__
    dialect_insert = _dialect_insert(db)
    for start in range(0, len(rows), _UPSERT_CHUNK):
        stmt = dialect_insert(table).values(rows[start:start + _UPSERT_CHUNK])
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.student_id],
            set_={field: table.c[field] + stmt.excluded[field], "updated_at": now},
            where=table.c.tenant_id == tenant_id,
        )
        await db.execute(stmt)


async def write_cache(db: AsyncSession, tenant_id: UUID, student_id: UUID, totals: BalanceTotals) -> None:
    """Overwrite the cached totals for one student. Caller owns the transaction."""
    result = await db.execute(
        select(StudentBalance)
        .where(StudentBalance.student_id == student_id, StudentBalance.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        db.add(
            StudentBalance(
                student_id=student_id,
                tenant_id=tenant_id,
                fees_total=totals.fees_total,
                payments_total=totals.payments_total,
                discounts_total=totals.discounts_total,
            )
        )
        return
    row.fees_total = totals.fees_total
    row.payments_total = totals.payments_total
    row.discounts_total = totals.discounts_total


def totals_equal(a: BalanceTotals, b: BalanceTotals) -> bool:
    return (
        to_decimal(a.fees_total) == to_decimal(b.fees_total)
        and to_decimal(a.payments_total) == to_decimal(b.payments_total)
        and to_decimal(a.discounts_total) == to_decimal(b.discounts_total)
    )
