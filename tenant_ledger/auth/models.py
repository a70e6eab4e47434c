import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class Actor(Base):
    """User within a tenant. Exactly one role; Admin is the only role that reads across tenants."""

    __tablename__ = "actors"
    __table_args__ = (
        # Email must be unique per tenant
        UniqueConstraint("tenant_id", "email", name="uq_actor_tenant_email"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Owning tenant
    tenant_id = Column(Uuid, ForeignKey("tenants.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)
    # Teacher, Secretary, Student, Parent, Admin
    role = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    tenant = relationship("Tenant", back_populates="actors")
