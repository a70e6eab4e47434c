"""Fee catalog service: reusable fee definitions, tenant-scoped, with audit."""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.api.v1.audit import service as audit_service
from tenant_ledger.api.v1.audit.details import FeeStructureCreated, FeeStructureDeleted, FeeStructureUpdated
from tenant_ledger.auth.rbac import FEE_MANAGERS, FINANCE_READERS, authorize, scope_tenant
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core import student_directory
from tenant_ledger.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from tenant_ledger.core.models import FeeCatalogEntry, FinancialRecord
from tenant_ledger.core.money import to_decimal, validated_amount

from .schemas import Applicability, FeeCatalogCreate, FeeCatalogFilters, FeeCatalogResponse, FeeCatalogUpdate

FEE_NOT_FOUND = "Fee not found"


def _to_response(entry: FeeCatalogEntry) -> FeeCatalogResponse:
    return FeeCatalogResponse(
        id=entry.id,
        tenant_id=entry.tenant_id,
        name=entry.name,
        amount=to_decimal(entry.amount),
        category=entry.category,
        applicability=Applicability(
            level=entry.level,
            grade=entry.grade,
            classroom_id=entry.classroom_id,
        ),
        created_by=entry.created_by,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def _clean(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None


async def _validated_applicability(db: AsyncSession, tenant_id: UUID, applicability: Applicability) -> Applicability:
    level = _clean(applicability.level)
    if level is None and applicability.classroom_id is None:
        raise ValidationFailed("applicability required")
    if applicability.classroom_id is not None:
        if not await student_directory.classroom_exists(db, tenant_id, applicability.classroom_id):
            raise NotFoundError("Classroom not found")
    return Applicability(level=level, grade=_clean(applicability.grade), classroom_id=applicability.classroom_id)


async def get_entry_or_404(db: AsyncSession, tenant_id: UUID, fee_catalog_id: UUID) -> FeeCatalogEntry:
    """Catalog entry inside tenant_id; another tenant's entry is reported as not found."""
    result = await db.execute(
        select(FeeCatalogEntry).where(
            FeeCatalogEntry.id == fee_catalog_id,
            FeeCatalogEntry.tenant_id == tenant_id,
        )
    )
    entry = result.scalar_one_or_none()
    if entry is None:
        raise NotFoundError(FEE_NOT_FOUND)
    return entry


async def is_referenced(db: AsyncSession, tenant_id: UUID, fee_catalog_id: UUID) -> bool:
    result = await db.execute(
        select(
            exists().where(
                FinancialRecord.tenant_id == tenant_id,
                FinancialRecord.fee_catalog_id == fee_catalog_id,
            )
        )
    )
    return bool(result.scalar())


async def create_fee(
    db: AsyncSession,
    context: TenantContext,
    payload: FeeCatalogCreate,
) -> FeeCatalogResponse:
    authorize(context, "create fees", FEE_MANAGERS)
    name = _clean(payload.name)
    if not name:
        raise ValidationFailed("Fee name is required")
    amount = validated_amount(payload.amount)
    applicability = await _validated_applicability(db, context.tenant_id, payload.applicability)

    entry = FeeCatalogEntry(
        tenant_id=context.tenant_id,
        name=name,
        amount=amount,
        category=payload.category.value,
        level=applicability.level,
        grade=applicability.grade,
        classroom_id=applicability.classroom_id,
        created_by=context.actor_id,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)
    response = _to_response(entry)

    await audit_service.record(
        db, context, "create_fee_structure", "fee_structure", response.id,
        FeeStructureCreated(name=response.name, amount=response.amount, category=response.category.value),
    )
    return response


async def list_fees(
    db: AsyncSession,
    context: TenantContext,
    filters: Optional[FeeCatalogFilters] = None,
) -> List[FeeCatalogResponse]:
    authorize(context, "read fees", FINANCE_READERS)
    filters = filters or FeeCatalogFilters()
    tenant_id = scope_tenant(context, filters.tenant_id)

    stmt = select(FeeCatalogEntry).where(FeeCatalogEntry.tenant_id == tenant_id)
    if filters.category is not None:
        stmt = stmt.where(FeeCatalogEntry.category == filters.category.value)
    if filters.level:
        stmt = stmt.where(FeeCatalogEntry.level == filters.level.strip())
    if filters.grade:
        stmt = stmt.where(FeeCatalogEntry.grade == filters.grade.strip())
    if filters.classroom_id is not None:
        stmt = stmt.where(FeeCatalogEntry.classroom_id == filters.classroom_id)
    stmt = stmt.order_by(FeeCatalogEntry.created_at.desc())
    result = await db.execute(stmt)
    return [_to_response(e) for e in result.scalars().all()]


async def get_fee(
    db: AsyncSession,
    context: TenantContext,
    fee_catalog_id: UUID,
) -> FeeCatalogResponse:
    authorize(context, "read fees", FINANCE_READERS)
    entry = await get_entry_or_404(db, context.tenant_id, fee_catalog_id)
    return _to_response(entry)


async def update_fee(
    db: AsyncSession,
    context: TenantContext,
    fee_catalog_id: UUID,
    payload: FeeCatalogUpdate,
) -> FeeCatalogResponse:
    """Rename always; amount, category and applicability only while no record references the fee."""
    authorize(context, "update fees", FEE_MANAGERS)
    entry = await get_entry_or_404(db, context.tenant_id, fee_catalog_id)

    changes: dict = {}
    if payload.name is not None:
        name = _clean(payload.name)
        if not name:
            raise ValidationFailed("Fee name is required")
        if name != entry.name:
            changes["name"] = name

    financial: dict = {}
    if payload.amount is not None:
        amount = validated_amount(payload.amount)
        if amount != to_decimal(entry.amount):
            financial["amount"] = amount
    if payload.category is not None and payload.category.value != entry.category:
        financial["category"] = payload.category.value
    if payload.applicability is not None:
        applicability = await _validated_applicability(db, context.tenant_id, payload.applicability)
        for field in ("level", "grade", "classroom_id"):
            value = getattr(applicability, field)
            if value != getattr(entry, field):
                financial[field] = value

    if financial and await is_referenced(db, context.tenant_id, entry.id):
        raise ConflictError("Fee is already charged to students; only its name can change")
    changes.update(financial)

    if not changes:
        return _to_response(entry)
    for field, value in changes.items():
        setattr(entry, field, value)
    await db.commit()
    await db.refresh(entry)
    response = _to_response(entry)

    await audit_service.record(
        db, context, "update_fee_structure", "fee_structure", response.id,
        FeeStructureUpdated(changes={k: (str(v) if v is not None else None) for k, v in changes.items()}),
    )
    return response


async def delete_fee(
    db: AsyncSession,
    context: TenantContext,
    fee_catalog_id: UUID,
) -> None:
    """Delete an unreferenced fee. Referenced fees raise ConflictError; reassign or keep them instead."""
    authorize(context, "delete fees", FEE_MANAGERS)
    entry = await get_entry_or_404(db, context.tenant_id, fee_catalog_id)
    if await is_referenced(db, context.tenant_id, entry.id):
        raise ConflictError("Fee is referenced by financial records and cannot be deleted")

    details = FeeStructureDeleted(name=entry.name, amount=to_decimal(entry.amount))
    entry_id = entry.id
    try:
        await db.delete(entry)
        await db.commit()
    except IntegrityError:
        # A record referencing the fee was written between the check and the delete.
        await db.rollback()
        raise ConflictError("Fee is referenced by financial records and cannot be deleted")

    await audit_service.record(db, context, "delete_fee_structure", "fee_structure", entry_id, details)
