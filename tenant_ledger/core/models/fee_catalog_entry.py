"""Fee catalog entry: reusable fee definition (Term 1 tuition, bus, books). Tenant-scoped."""

import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class FeeCatalogEntry(Base):
    """
    Amount, category and applicability are frozen once any financial record references the entry;
    only name stays editable. Records copy the amount at creation time.
    """

    __tablename__ = "fee_catalog_entries"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_fee_catalog_amount_positive"),
        CheckConstraint(
            "category IN ('tuition','bus','books','uniform','activity','other')",
            name="chk_fee_catalog_category",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    category = Column(String(20), nullable=False)
    # Applicability filter: at least level or classroom_id is set
    level = Column(String(50), nullable=True)
    grade = Column(String(50), nullable=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True)
    created_by = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    tenant = relationship("Tenant")
    classroom = relationship("Classroom")
