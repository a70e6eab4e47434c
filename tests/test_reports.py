from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.api.v1.ledger import service as ledger
from tenant_ledger.api.v1.ledger.schemas import CohortAssignmentRequest, TransactionCreate
from tenant_ledger.api.v1.reports import service as reports
from tenant_ledger.core.enums import ActorRole, FinancialRecordStatus, FinancialRecordType
from tenant_ledger.core.exceptions import ForbiddenError


@pytest.mark.asyncio
async def test_financial_stats(db_session: AsyncSession, school, term_fee) -> None:
    context = school.context(ActorRole.SECRETARY)
    first, second = school.student_ids[:2]
    await ledger.assign_to_cohort(
        db_session, context, CohortAssignmentRequest(fee_catalog_id=term_fee.id, classroom_id=school.classroom_id)
    )
    overdue = await ledger.record_transaction(
        db_session, context, TransactionCreate(student_id=second, type=FinancialRecordType.fee, amount=Decimal("300"))
    )
    await ledger.update_status(db_session, context, overdue.id, FinancialRecordStatus.overdue)

    await ledger.record_transaction(
        db_session, context, TransactionCreate(student_id=first, type=FinancialRecordType.payment, amount=Decimal("400"))
    )
    await ledger.record_transaction(
        db_session,
        context,
        TransactionCreate(
            student_id=first, type=FinancialRecordType.payment, amount=Decimal("100"), date=date(2020, 1, 15)
        ),
    )
    # Pending payments are not revenue
    await ledger.record_transaction(
        db_session,
        context,
        TransactionCreate(
            student_id=first,
            type=FinancialRecordType.payment,
            amount=Decimal("999"),
            status=FinancialRecordStatus.pending,
        ),
    )

    stats = await reports.get_financial_stats(db_session, school.context(ActorRole.ADMIN))
    assert stats.total_revenue == Decimal("500.00")
    assert stats.total_pending == Decimal("3000.00")
    assert stats.total_overdue == Decimal("300.00")
    assert stats.monthly_revenue == Decimal("400.00")


@pytest.mark.asyncio
async def test_financial_stats_empty(db_session: AsyncSession, school) -> None:
    stats = await reports.get_financial_stats(db_session, school.context(ActorRole.TEACHER))
    assert stats.total_revenue == Decimal("0")
    assert stats.monthly_revenue == Decimal("0")


@pytest.mark.asyncio
async def test_outstanding_balances(db_session: AsyncSession, school, term_fee) -> None:
    context = school.context(ActorRole.SECRETARY)
    first, second, third, _ = school.student_ids
    await ledger.assign_to_cohort(
        db_session, context, CohortAssignmentRequest(fee_catalog_id=term_fee.id, classroom_id=school.classroom_id)
    )
    await ledger.record_transaction(
        db_session, context, TransactionCreate(student_id=first, type=FinancialRecordType.payment, amount=Decimal("1000"))
    )
    await ledger.record_transaction(
        db_session, context, TransactionCreate(student_id=third, type=FinancialRecordType.payment, amount=Decimal("50"))
    )

    items = await reports.list_outstanding_balances(db_session, context)
    assert [(i.student_id, i.balance) for i in items] == [
        (second, Decimal("1500.00")),
        (first, Decimal("500.00")),
    ]
    assert items[0].full_name == "Bilal Nassar"

    other_room = await reports.list_outstanding_balances(db_session, context, classroom_id=school.other_classroom_id)
    assert other_room == []


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [ActorRole.STUDENT, ActorRole.PARENT])
async def test_reports_forbidden(db_session: AsyncSession, school, role) -> None:
    with pytest.raises(ForbiddenError):
        await reports.get_financial_stats(db_session, school.context(role))
    with pytest.raises(ForbiddenError):
        await reports.list_outstanding_balances(db_session, school.context(role))
