"""Financial record: one ledger line (fee, payment or discount) for a student."""

import uuid

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class FinancialRecord(Base):
    """
    Amount and type are immutable after creation; only status moves
    (pending -> completed/overdue/cancelled, overdue -> completed/cancelled).
    """

    __tablename__ = "financial_records"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_financial_record_amount_positive"),
        CheckConstraint(
            "type IN ('fee','payment','discount')",
            name="chk_financial_record_type",
        ),
        CheckConstraint(
            "status IN ('completed','pending','overdue','cancelled')",
            name="chk_financial_record_status",
        ),
        Index("ix_financial_records_tenant_student", "tenant_id", "student_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    student_id = Column(Uuid, ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)
    date = Column(Date, nullable=False)
    invoice_number = Column(String(50), nullable=True)
    payment_method = Column(String(30), nullable=True)  # cash, bank_transfer, card, cheque, other
    # Informational only; amount was copied from the catalog when the record was created
    fee_catalog_id = Column(
        Uuid,
        ForeignKey("fee_catalog_entries.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    created_by = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tenant = relationship("Tenant")
    student = relationship("Student")
    fee_catalog_entry = relationship("FeeCatalogEntry")
