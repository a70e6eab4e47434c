from enum import Enum


class TenantType(str, Enum):
    INDIVIDUAL = "individual"
    CENTER = "center"
    SCHOOL = "school"


class ActorRole(str, Enum):
    TEACHER = "Teacher"
    SECRETARY = "Secretary"
    STUDENT = "Student"
    PARENT = "Parent"
    ADMIN = "Admin"


class FeeCategory(str, Enum):
    tuition = "tuition"
    bus = "bus"
    books = "books"
    uniform = "uniform"
    activity = "activity"
    other = "other"


class FinancialRecordType(str, Enum):
    fee = "fee"
    payment = "payment"
    discount = "discount"


class FinancialRecordStatus(str, Enum):
    completed = "completed"
    pending = "pending"
    overdue = "overdue"
    cancelled = "cancelled"


class PaymentMethod(str, Enum):
    cash = "cash"
    bank_transfer = "bank_transfer"
    card = "card"
    cheque = "cheque"
    other = "other"


class AuditOutcome(str, Enum):
    """Result of an audit write. DEGRADED means the entry was lost, never that the caller failed."""

    OK = "ok"
    DEGRADED = "degraded"
