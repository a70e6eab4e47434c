"""Fee catalog schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tenant_ledger.core.enums import FeeCategory


class Applicability(BaseModel):
    """Which students a fee is meant for. At least level or classroom_id must be set."""

    level: Optional[str] = Field(None, max_length=50)
    grade: Optional[str] = Field(None, max_length=50)
    classroom_id: Optional[UUID] = None


class FeeCatalogCreate(BaseModel):
    name: str = Field(..., max_length=255)
    amount: Decimal
    category: FeeCategory
    applicability: Applicability = Field(default_factory=Applicability)


class FeeCatalogUpdate(BaseModel):
    # Only name may change once the entry is referenced by a financial record.
    name: Optional[str] = Field(None, max_length=255)
    amount: Optional[Decimal] = None
    category: Optional[FeeCategory] = None
    applicability: Optional[Applicability] = None


class FeeCatalogFilters(BaseModel):
    category: Optional[FeeCategory] = None
    level: Optional[str] = None
    grade: Optional[str] = None
    classroom_id: Optional[UUID] = None
    # Admin only: read another tenant's catalog
    tenant_id: Optional[UUID] = None


class FeeCatalogResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    name: str
    amount: Decimal
    category: FeeCategory
    applicability: Applicability
    created_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
