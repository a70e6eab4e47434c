"""
Student directory lookups used by the ledger: validate a student inside a tenant and resolve cohorts.

Every lookup takes tenant_id and filters on it; a student or classroom of another tenant is
reported exactly like a missing one.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_ledger.core.exceptions import NotFoundError, ValidationFailed
from tenant_ledger.core.models import Classroom, Student


async def get_student(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> Optional[Student]:
    result = await db.execute(
        select(Student).where(Student.id == student_id, Student.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none()


async def get_student_or_404(db: AsyncSession, tenant_id: UUID, student_id: UUID) -> Student:
    student = await get_student(db, tenant_id, student_id)
    if student is None:
        raise NotFoundError("Student not found")
    return student


async def classroom_exists(db: AsyncSession, tenant_id: UUID, classroom_id: UUID) -> bool:
    result = await db.execute(
        select(Classroom.id).where(Classroom.id == classroom_id, Classroom.tenant_id == tenant_id)
    )
    return result.scalar_one_or_none() is not None


def validate_cohort_filter(
    classroom_id: Optional[UUID],
    grade: Optional[str],
    level: Optional[str],
) -> None:
    """A cohort is a classroom, or a grade+level pair. Anything else is a validation error."""
    if classroom_id is not None:
        if grade or level:
            raise ValidationFailed("Cohort is either classroom_id or grade+level, not both")
        return
    if not (grade and grade.strip()) or not (level and level.strip()):
        raise ValidationFailed("Cohort filter required: classroom_id, or grade and level")


async def resolve_cohort(
    db: AsyncSession,
    tenant_id: UUID,
    classroom_id: Optional[UUID] = None,
    grade: Optional[str] = None,
    level: Optional[str] = None,
) -> List[UUID]:
    """Student ids in the cohort, ordered for stable inserts. Unknown classroom -> NotFoundError."""
    validate_cohort_filter(classroom_id, grade, level)
    stmt = select(Student.id).where(Student.tenant_id == tenant_id)
    if classroom_id is not None:
        if not await classroom_exists(db, tenant_id, classroom_id):
            raise NotFoundError("Classroom not found")
        stmt = stmt.where(Student.classroom_id == classroom_id)
    else:
        stmt = stmt.where(Student.grade == grade.strip(), Student.level == level.strip())
    stmt = stmt.order_by(Student.id)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def is_linked_to_student(db: AsyncSession, tenant_id: UUID, actor_id: UUID, student_id: UUID) -> bool:
    """True when actor_id is the student's own login or the linked parent's login."""
    student = await get_student(db, tenant_id, student_id)
    if student is None:
        return False
    return actor_id in (student.user_id, student.parent_user_id)


async def linked_student_ids(db: AsyncSession, tenant_id: UUID, actor_id: UUID) -> List[UUID]:
    result = await db.execute(
        select(Student.id).where(
            Student.tenant_id == tenant_id,
            (Student.user_id == actor_id) | (Student.parent_user_id == actor_id),
        )
    )
    return list(result.scalars().all())
