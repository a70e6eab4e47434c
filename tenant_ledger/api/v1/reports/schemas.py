"""Reports schemas."""

from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class FinancialStats(BaseModel):
    total_revenue: Decimal
    total_pending: Decimal
    total_overdue: Decimal
    monthly_revenue: Decimal


class OutstandingBalanceItem(BaseModel):
    student_id: UUID
    full_name: str
    classroom_id: Optional[UUID] = None
    balance: Decimal
