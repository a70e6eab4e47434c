"""Fee catalog router."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.auth.dependencies import get_tenant_context
from tenant_ledger.auth.rbac import FEE_MANAGERS, FINANCE_READERS, require_roles
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.core.enums import FeeCategory
from tenant_ledger.core.exceptions import ServiceError
from tenant_ledger.db.session import get_db

from .schemas import FeeCatalogCreate, FeeCatalogFilters, FeeCatalogResponse, FeeCatalogUpdate
from . import service

router = APIRouter(prefix="/api/v1/fee-catalog", tags=["fee-catalog"])


@router.post(
    "",
    response_model=FeeCatalogResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_roles("create fees", FEE_MANAGERS))],
)
async def create_fee(
    payload: FeeCatalogCreate,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FeeCatalogResponse:
    try:
        return await service.create_fee(db, context, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "",
    response_model=List[FeeCatalogResponse],
    dependencies=[Depends(require_roles("read fees", FINANCE_READERS))],
)
async def list_fees(
    category: Optional[FeeCategory] = Query(None),
    level: Optional[str] = Query(None),
    grade: Optional[str] = Query(None),
    classroom_id: Optional[UUID] = Query(None),
    tenant_id: Optional[UUID] = Query(None, description="Admin only: read another tenant's catalog"),
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> List[FeeCatalogResponse]:
    filters = FeeCatalogFilters(
        category=category,
        level=level,
        grade=grade,
        classroom_id=classroom_id,
        tenant_id=tenant_id,
    )
    try:
        return await service.list_fees(db, context, filters)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get(
    "/{fee_catalog_id}",
    response_model=FeeCatalogResponse,
    dependencies=[Depends(require_roles("read fees", FINANCE_READERS))],
)
async def get_fee(
    fee_catalog_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FeeCatalogResponse:
    try:
        return await service.get_fee(db, context, fee_catalog_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.patch(
    "/{fee_catalog_id}",
    response_model=FeeCatalogResponse,
    dependencies=[Depends(require_roles("update fees", FEE_MANAGERS))],
)
async def update_fee(
    fee_catalog_id: UUID,
    payload: FeeCatalogUpdate,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> FeeCatalogResponse:
    try:
        return await service.update_fee(db, context, fee_catalog_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.delete(
    "/{fee_catalog_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_roles("delete fees", FEE_MANAGERS))],
)
async def delete_fee(
    fee_catalog_id: UUID,
    db: AsyncSession = Depends(get_db),
    context: TenantContext = Depends(get_tenant_context),
) -> Response:
    try:
        await service.delete_fee(db, context, fee_catalog_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
