"""
Audit entry: append-only history of mutating actions across the system.
Application code only ever inserts rows here.
"""

import uuid

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class AuditEntry(Base):
    __tablename__ = "audit_entries"
    __table_args__ = (
        Index("ix_audit_entries_tenant_created", "tenant_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    actor_id = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True, index=True)
    action_type = Column(String(100), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    # Polymorphic reference (entity_type + entity_id); not a foreign key
    entity_id = Column(Uuid, nullable=True)
    details = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    actor = relationship("Actor", foreign_keys=[actor_id])
