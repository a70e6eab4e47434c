import uuid

from sqlalchemy import Column, DateTime, String, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.core.enums import TenantType
from tenant_ledger.db.session import Base


class Tenant(Base):
    """
    Tenant (school, center or independent teacher) in the multi-tenant platform.

    Every other table carries tenant_id; no query or write may cross it.
    """

    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    # individual | center | school
    tenant_type = Column(String(20), nullable=False, default=TenantType.SCHOOL.value)
    status = Column(String(20), nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    actors = relationship("Actor", back_populates="tenant", cascade="all, delete-orphan")
