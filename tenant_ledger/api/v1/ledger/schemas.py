"""Ledger schemas."""

import datetime as dt
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType, PaymentMethod


# --- Transactions ---
class TransactionCreate(BaseModel):
    student_id: UUID
    type: FinancialRecordType
    # Optional when fee_catalog_id is given: defaults to the catalog's current amount.
    amount: Optional[Decimal] = None
    description: Optional[str] = None
    # Defaults to pending for fees, completed for payments and discounts.
    status: Optional[FinancialRecordStatus] = None
    date: Optional[dt.date] = None
    fee_catalog_id: Optional[UUID] = None
    payment_method: Optional[PaymentMethod] = None
    invoice_number: Optional[str] = Field(None, max_length=50)


class TransactionStatusUpdate(BaseModel):
    status: FinancialRecordStatus


class TransactionFilters(BaseModel):
    student_id: Optional[UUID] = None
    type: Optional[FinancialRecordType] = None
    status: Optional[FinancialRecordStatus] = None
    date_from: Optional[dt.date] = None
    date_to: Optional[dt.date] = None
    # Admin only: the tenant to read. Never defaults to "all tenants".
    tenant_id: Optional[UUID] = None


class FinancialRecordResponse(BaseModel):
    id: UUID
    tenant_id: UUID
    student_id: UUID
    type: FinancialRecordType
    amount: Decimal
    description: Optional[str] = None
    status: FinancialRecordStatus
    date: dt.date
    invoice_number: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    fee_catalog_id: Optional[UUID] = None
    created_by: Optional[UUID] = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True


# --- Cohort assignment ---
class CohortAssignmentRequest(BaseModel):
    """Cohort is a classroom, or a grade+level pair."""

    fee_catalog_id: UUID
    classroom_id: Optional[UUID] = None
    grade: Optional[str] = Field(None, max_length=50)
    level: Optional[str] = Field(None, max_length=50)


class CohortAssignmentResponse(BaseModel):
    fee_catalog_id: UUID
    affected_students: int


# --- Balance ---
class BalanceTotals(BaseModel):
    fees_total: Decimal = Decimal("0")
    payments_total: Decimal = Decimal("0")
    discounts_total: Decimal = Decimal("0")

    @property
    def balance(self) -> Decimal:
        return self.fees_total - self.payments_total - self.discounts_total


class BalanceResponse(BaseModel):
    student_id: UUID
    fees_total: Decimal
    payments_total: Decimal
    discounts_total: Decimal
    balance: Decimal


class BalanceReconciliation(BaseModel):
    student_id: UUID
    cached: BalanceTotals
    computed: BalanceTotals
    in_sync: bool
