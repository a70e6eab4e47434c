import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

from dataclasses import dataclass, field
from decimal import Decimal
from typing import AsyncGenerator, Dict, List
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tenant_ledger.api.v1.fee_catalog import service as fee_catalog_service
from tenant_ledger.api.v1.fee_catalog.schemas import Applicability, FeeCatalogCreate, FeeCatalogResponse
from tenant_ledger.auth.schemas import TenantContext
from tenant_ledger.auth.security import create_actor_token
from tenant_ledger.auth.services import context_cache
from tenant_ledger.core.enums import ActorRole, FeeCategory
from tenant_ledger.core.models import Actor, AuditEntry, Classroom, Student, Tenant
from tenant_ledger.db.session import Base, get_db
from tenant_ledger.main import app


TEST_DATABASE_URL = "sqlite+aiosqlite://"


@dataclass(frozen=True)
class ActorInfo:
    id: UUID
    tenant_id: UUID
    role: str


@dataclass
class School:
    """
    Ids seeded for one tenant. Plain values only: services roll back the shared session on
    failure, which expires ORM instances.

    students[0], students[1] sit in classroom (grade 5, primary); students[2] is grade 5 primary
    in other_classroom; students[3] is grade 6 primary in other_classroom.
    """

    tenant_id: UUID
    classroom_id: UUID
    other_classroom_id: UUID
    student_ids: List[UUID]
    actors: Dict[ActorRole, ActorInfo] = field(default_factory=dict)

    def context(self, role: ActorRole) -> TenantContext:
        actor = self.actors[role]
        return TenantContext(tenant_id=self.tenant_id, actor_id=actor.id, role=role)

    def headers(self, role: ActorRole) -> Dict[str, str]:
        return {"Authorization": f"Bearer {create_actor_token(self.actors[role])}"}


async def seed_school(session: AsyncSession, name: str) -> School:
    tenant = Tenant(name=name, tenant_type="school")
    session.add(tenant)
    await session.flush()

    actors = {}
    for role in ActorRole:
        actor = Actor(
            tenant_id=tenant.id,
            full_name=f"{role.value} of {name}",
            email=f"{role.value.lower()}@{name.lower().replace(' ', '-')}.test",
            role=role.value,
        )
        session.add(actor)
        actors[role] = actor
    await session.flush()

    classroom = Classroom(tenant_id=tenant.id, name="5A")
    other_classroom = Classroom(tenant_id=tenant.id, name="5B")
    session.add_all([classroom, other_classroom])
    await session.flush()

    students = [
        Student(
            tenant_id=tenant.id,
            full_name="Amina Haddad",
            classroom_id=classroom.id,
            grade="5",
            level="primary",
            user_id=actors[ActorRole.STUDENT].id,
            parent_user_id=actors[ActorRole.PARENT].id,
        ),
        Student(tenant_id=tenant.id, full_name="Bilal Nassar", classroom_id=classroom.id, grade="5", level="primary"),
        Student(tenant_id=tenant.id, full_name="Chadi Khoury", classroom_id=other_classroom.id, grade="5", level="primary"),
        Student(tenant_id=tenant.id, full_name="Dana Saleh", classroom_id=other_classroom.id, grade="6", level="primary"),
    ]
    session.add_all(students)
    await session.commit()

    return School(
        tenant_id=tenant.id,
        classroom_id=classroom.id,
        other_classroom_id=other_classroom.id,
        student_ids=[s.id for s in students],
        actors={
            role: ActorInfo(id=actor.id, tenant_id=tenant.id, role=role.value)
            for role, actor in actors.items()
        },
    )


class AuditOutage:
    """Drops and recreates the audit_entries table to make the audit log unavailable."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def start(self) -> None:
        await self.session.commit()
        await self.session.run_sync(lambda s: AuditEntry.__table__.drop(s.connection()))
        await self.session.commit()

    async def end(self) -> None:
        await self.session.run_sync(lambda s: AuditEntry.__table__.create(s.connection()))
        await self.session.commit()


@pytest.fixture(autouse=True)
def clear_context_cache():
    context_cache.clear()
    yield
    context_cache.clear()


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a fresh in-memory database for a test and override the FastAPI dependency."""
    # StaticPool keeps one connection so every session sees the same in-memory database.
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async_session = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:

        async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
            yield session

        app.dependency_overrides[get_db] = override_get_db
        yield session

    app.dependency_overrides.pop(get_db, None)
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def school(db_session: AsyncSession) -> School:
    return await seed_school(db_session, "Cedar School")


@pytest.fixture()
async def other_school(db_session: AsyncSession) -> School:
    return await seed_school(db_session, "Oak Academy")


@pytest.fixture()
async def term_fee(db_session: AsyncSession, school: School) -> FeeCatalogResponse:
    """Catalog entry "Term 1", 1500, tuition for the seeded classroom."""
    return await fee_catalog_service.create_fee(
        db_session,
        school.context(ActorRole.SECRETARY),
        FeeCatalogCreate(
            name="Term 1",
            amount=Decimal("1500"),
            category=FeeCategory.tuition,
            applicability=Applicability(level="primary", grade="5", classroom_id=school.classroom_id),
        ),
    )


@pytest.fixture()
def audit_outage(db_session: AsyncSession) -> AuditOutage:
    return AuditOutage(db_session)
