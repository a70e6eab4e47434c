"""
Audit detail schemas, keyed by action_type.

Every action type written to the audit log has a registered schema so the details column stays
queryable. Extra keys are rejected.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, Optional, Type, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from tenant_ledger.core.enums import FinancialRecordStatus, FinancialRecordType


class AuditDetails(BaseModel):
    model_config = ConfigDict(extra="forbid")


# --- Fee catalog ---
class FeeStructureCreated(AuditDetails):
    name: str
    amount: Decimal
    category: str


class FeeStructureUpdated(AuditDetails):
    # field name -> new value, only for fields that changed
    changes: Dict[str, Optional[str]]


class FeeStructureDeleted(AuditDetails):
    name: str
    amount: Decimal


class FeeAssigned(AuditDetails):
    classroom_id: Optional[UUID] = None
    grade: Optional[str] = None
    level: Optional[str] = None
    affected_students: int = Field(..., ge=0)


# --- Ledger ---
class TransactionRecorded(AuditDetails):
    amount: Decimal
    type: FinancialRecordType
    student_id: UUID


class TransactionStatusUpdated(AuditDetails):
    student_id: UUID
    from_status: FinancialRecordStatus
    to_status: FinancialRecordStatus


# --- Callers outside the ledger ---
class StudentCreated(AuditDetails):
    name: str
    grade: Optional[str] = None
    level: Optional[str] = None


class StudentUpdated(AuditDetails):
    updates: Dict[str, Any]


class StudentDeleted(AuditDetails):
    pass


class HomeworkCreated(AuditDetails):
    title: str
    due_date: Optional[date] = None


class HomeworkGraded(AuditDetails):
    grade: Union[Decimal, str]
    student_id: Optional[UUID] = None


AUDIT_DETAIL_SCHEMAS: Dict[str, Type[AuditDetails]] = {
    "create_fee_structure": FeeStructureCreated,
    "update_fee_structure": FeeStructureUpdated,
    "delete_fee_structure": FeeStructureDeleted,
    "assign_fee": FeeAssigned,
    "create_fee": TransactionRecorded,
    "record_payment": TransactionRecorded,
    "update_transaction_status": TransactionStatusUpdated,
    "create_student": StudentCreated,
    "update_student": StudentUpdated,
    "delete_student": StudentDeleted,
    "create_homework": HomeworkCreated,
    "grade_homework": HomeworkGraded,
}
