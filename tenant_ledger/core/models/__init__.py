from tenant_ledger.auth.models import Actor
from tenant_ledger.core.models.tenant import Tenant
from tenant_ledger.core.models.classroom import Classroom
from tenant_ledger.core.models.student import Student
from tenant_ledger.core.models.fee_catalog_entry import FeeCatalogEntry
from tenant_ledger.core.models.financial_record import FinancialRecord
from tenant_ledger.core.models.student_balance import StudentBalance
from tenant_ledger.core.models.audit_entry import AuditEntry

__all__ = [
    "Actor",
    "AuditEntry",
    "Classroom",
    "FeeCatalogEntry",
    "FinancialRecord",
    "Student",
    "StudentBalance",
    "Tenant",
]
