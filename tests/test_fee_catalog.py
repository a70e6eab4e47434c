from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.api.v1.fee_catalog import service as fee_catalog
from tenant_ledger.api.v1.fee_catalog.schemas import (
    Applicability,
    FeeCatalogCreate,
    FeeCatalogFilters,
    FeeCatalogUpdate,
)
from tenant_ledger.api.v1.ledger import service as ledger
from tenant_ledger.api.v1.ledger.schemas import CohortAssignmentRequest
from tenant_ledger.core.enums import ActorRole, FeeCategory
from tenant_ledger.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationFailed
from tenant_ledger.core.models import AuditEntry, FeeCatalogEntry


def _term_fee(school, **overrides) -> FeeCatalogCreate:
    data = {
        "name": "Term 1",
        "amount": Decimal("1500"),
        "category": FeeCategory.tuition,
        "applicability": Applicability(level="primary", grade="5", classroom_id=school.classroom_id),
    }
    data.update(overrides)
    return FeeCatalogCreate(**data)


@pytest.mark.asyncio
async def test_create_fee(db_session: AsyncSession, school) -> None:
    context = school.context(ActorRole.SECRETARY)
    fee = await fee_catalog.create_fee(db_session, context, _term_fee(school))

    assert fee.tenant_id == school.tenant_id
    assert fee.name == "Term 1"
    assert fee.amount == Decimal("1500.00")
    assert fee.category == FeeCategory.tuition
    assert fee.applicability.classroom_id == school.classroom_id
    assert fee.created_by == context.actor_id

    audit = (
        await db_session.execute(select(AuditEntry).where(AuditEntry.entity_id == fee.id))
    ).scalar_one()
    assert audit.action_type == "create_fee_structure"
    assert audit.entity_type == "fee_structure"
    assert audit.details["name"] == "Term 1"


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
async def test_create_fee_rejects_non_positive_amount(db_session: AsyncSession, school, amount) -> None:
    with pytest.raises(ValidationFailed):
        await fee_catalog.create_fee(
            db_session, school.context(ActorRole.SECRETARY), _term_fee(school, amount=amount)
        )


@pytest.mark.asyncio
@pytest.mark.parametrize("amount", [Decimal("1e30"), Decimal("10000000000")])
async def test_create_fee_rejects_amount_beyond_column_range(db_session: AsyncSession, school, amount) -> None:
    with pytest.raises(ValidationFailed, match="too large"):
        await fee_catalog.create_fee(
            db_session, school.context(ActorRole.SECRETARY), _term_fee(school, amount=amount)
        )
    assert (await db_session.execute(select(FeeCatalogEntry))).scalars().all() == []


@pytest.mark.asyncio
async def test_create_fee_accepts_largest_storable_amount(db_session: AsyncSession, school) -> None:
    fee = await fee_catalog.create_fee(
        db_session, school.context(ActorRole.SECRETARY), _term_fee(school, amount=Decimal("9999999999.99"))
    )
    assert fee.amount == Decimal("9999999999.99")


@pytest.mark.asyncio
async def test_create_fee_requires_applicability(db_session: AsyncSession, school) -> None:
    payload = _term_fee(school, applicability=Applicability(grade="5"))
    with pytest.raises(ValidationFailed, match="applicability required"):
        await fee_catalog.create_fee(db_session, school.context(ActorRole.TEACHER), payload)

    count = len((await db_session.execute(select(FeeCatalogEntry))).scalars().all())
    assert count == 0


@pytest.mark.asyncio
async def test_create_fee_rejects_classroom_of_other_tenant(db_session: AsyncSession, school, other_school) -> None:
    payload = _term_fee(school, applicability=Applicability(classroom_id=other_school.classroom_id))
    with pytest.raises(NotFoundError):
        await fee_catalog.create_fee(db_session, school.context(ActorRole.SECRETARY), payload)


@pytest.mark.asyncio
@pytest.mark.parametrize("role", [ActorRole.STUDENT, ActorRole.PARENT, ActorRole.ADMIN])
async def test_create_fee_forbidden_for_other_roles(db_session: AsyncSession, school, role) -> None:
    with pytest.raises(ForbiddenError):
        await fee_catalog.create_fee(db_session, school.context(role), _term_fee(school))


@pytest.mark.asyncio
async def test_list_fees_is_tenant_scoped(db_session: AsyncSession, school, other_school) -> None:
    await fee_catalog.create_fee(db_session, school.context(ActorRole.SECRETARY), _term_fee(school))
    await fee_catalog.create_fee(
        db_session,
        school.context(ActorRole.SECRETARY),
        _term_fee(school, name="Bus", category=FeeCategory.bus, applicability=Applicability(level="primary")),
    )
    await fee_catalog.create_fee(
        db_session, other_school.context(ActorRole.SECRETARY), _term_fee(other_school)
    )

    fees = await fee_catalog.list_fees(db_session, school.context(ActorRole.TEACHER))
    assert {f.name for f in fees} == {"Term 1", "Bus"}
    assert all(f.tenant_id == school.tenant_id for f in fees)

    buses = await fee_catalog.list_fees(
        db_session, school.context(ActorRole.TEACHER), FeeCatalogFilters(category=FeeCategory.bus)
    )
    assert [f.name for f in buses] == ["Bus"]

    # Admin reads another tenant only by naming it
    admin = school.context(ActorRole.ADMIN)
    other = await fee_catalog.list_fees(db_session, admin, FeeCatalogFilters(tenant_id=other_school.tenant_id))
    assert [f.tenant_id for f in other] == [other_school.tenant_id]

    with pytest.raises(ForbiddenError):
        await fee_catalog.list_fees(
            db_session,
            school.context(ActorRole.SECRETARY),
            FeeCatalogFilters(tenant_id=other_school.tenant_id),
        )


@pytest.mark.asyncio
async def test_get_fee_of_other_tenant_is_not_found(db_session: AsyncSession, school, other_school) -> None:
    fee = await fee_catalog.create_fee(db_session, school.context(ActorRole.SECRETARY), _term_fee(school))
    with pytest.raises(NotFoundError):
        await fee_catalog.get_fee(db_session, other_school.context(ActorRole.SECRETARY), fee.id)


@pytest.mark.asyncio
async def test_update_fee_of_other_tenant_is_not_found(db_session: AsyncSession, school, other_school) -> None:
    fee = await fee_catalog.create_fee(db_session, school.context(ActorRole.SECRETARY), _term_fee(school))
    with pytest.raises(NotFoundError):
        await fee_catalog.update_fee(
            db_session, other_school.context(ActorRole.SECRETARY), fee.id, FeeCatalogUpdate(name="Hijacked")
        )
    assert (await fee_catalog.get_fee(db_session, school.context(ActorRole.SECRETARY), fee.id)).name == "Term 1"


@pytest.mark.asyncio
async def test_delete_fee_of_other_tenant_is_not_found(db_session: AsyncSession, school, other_school) -> None:
    fee = await fee_catalog.create_fee(db_session, school.context(ActorRole.SECRETARY), _term_fee(school))
    with pytest.raises(NotFoundError):
        await fee_catalog.delete_fee(db_session, other_school.context(ActorRole.TEACHER), fee.id)
    assert (await fee_catalog.get_fee(db_session, school.context(ActorRole.SECRETARY), fee.id)).id == fee.id


@pytest.mark.asyncio
async def test_update_unreferenced_fee(db_session: AsyncSession, school) -> None:
    context = school.context(ActorRole.SECRETARY)
    fee = await fee_catalog.create_fee(db_session, context, _term_fee(school))

    updated = await fee_catalog.update_fee(
        db_session, context, fee.id, FeeCatalogUpdate(name="Term 1 tuition", amount=Decimal("1600"))
    )
    assert updated.name == "Term 1 tuition"
    assert updated.amount == Decimal("1600.00")

    audit = (
        await db_session.execute(
            select(AuditEntry).where(AuditEntry.action_type == "update_fee_structure")
        )
    ).scalar_one()
    assert audit.details["changes"] == {"name": "Term 1 tuition", "amount": "1600.00"}


@pytest.mark.asyncio
async def test_referenced_fee_only_allows_rename(db_session: AsyncSession, school) -> None:
    context = school.context(ActorRole.SECRETARY)
    fee = await fee_catalog.create_fee(db_session, context, _term_fee(school))
    await ledger.assign_to_cohort(
        db_session, context, CohortAssignmentRequest(fee_catalog_id=fee.id, classroom_id=school.classroom_id)
    )

    with pytest.raises(ConflictError):
        await fee_catalog.update_fee(db_session, context, fee.id, FeeCatalogUpdate(amount=Decimal("2000")))

    renamed = await fee_catalog.update_fee(db_session, context, fee.id, FeeCatalogUpdate(name="Term One"))
    assert renamed.name == "Term One"
    assert renamed.amount == Decimal("1500.00")


@pytest.mark.asyncio
async def test_delete_fee(db_session: AsyncSession, school) -> None:
    context = school.context(ActorRole.TEACHER)
    fee = await fee_catalog.create_fee(db_session, context, _term_fee(school))

    await fee_catalog.delete_fee(db_session, context, fee.id)

    with pytest.raises(NotFoundError):
        await fee_catalog.get_fee(db_session, context, fee.id)
    actions = (
        await db_session.execute(select(AuditEntry.action_type).where(AuditEntry.entity_id == fee.id))
    ).scalars().all()
    assert sorted(actions) == ["create_fee_structure", "delete_fee_structure"]


@pytest.mark.asyncio
async def test_delete_referenced_fee_conflicts(db_session: AsyncSession, school) -> None:
    context = school.context(ActorRole.SECRETARY)
    fee = await fee_catalog.create_fee(db_session, context, _term_fee(school))
    await ledger.assign_to_cohort(
        db_session, context, CohortAssignmentRequest(fee_catalog_id=fee.id, classroom_id=school.classroom_id)
    )

    with pytest.raises(ConflictError):
        await fee_catalog.delete_fee(db_session, context, fee.id)
    assert (await fee_catalog.get_fee(db_session, context, fee.id)).id == fee.id
