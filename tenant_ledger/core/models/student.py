"""Student directory projection: the fields the ledger needs to validate ids and resolve cohorts."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import relationship

from tenant_ledger.core.clock import utcnow
from tenant_ledger.db.session import Base


class Student(Base):
    __tablename__ = "students"
    __table_args__ = (
        Index("ix_students_tenant_grade_level", "tenant_id", "grade", "level"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    # Login of the student themself, if any
    user_id = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True)
    # Login of the linked parent, if any
    parent_user_id = Column(Uuid, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True)
    full_name = Column(String(255), nullable=False)
    student_code = Column(String(50), nullable=True)
    classroom_id = Column(Uuid, ForeignKey("classrooms.id", ondelete="SET NULL"), nullable=True, index=True)
    grade = Column(String(50), nullable=False)
    level = Column(String(50), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    tenant = relationship("Tenant")
    classroom = relationship("Classroom")
