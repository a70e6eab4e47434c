"""Incrementally maintained balance totals per student. A cache only; the ledger scan is authoritative."""

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, Uuid

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class StudentBalance(Base):
    __tablename__ = "student_balances"

    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), primary_key=True)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    fees_total = Column(Numeric(12, 2), nullable=False, default=0)
    payments_total = Column(Numeric(12, 2), nullable=False, default=0)
    discounts_total = Column(Numeric(12, 2), nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
