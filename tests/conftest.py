import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import random
from datetime import date
from typing import AsyncGenerator, Dict
from uuid import UUID

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import app.core.models  # noqa: F401
from app.main import app
from app.db.session import Base, engine_options, get_db
from app.api.v1.section_assignments.router import get_rng
from app.core.models import GradeLevel, SchoolYear, Section, Strand, Student, Track


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test; overrides the FastAPI session dependency."""
    # StaticPool: every connection shares the one in-memory database
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        future=True,
        **engine_options(TEST_DATABASE_URL),
        poolclass=StaticPool,
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
        app.dependency_overrides[get_rng] = lambda: random.Random(1234)
        yield session

    app.dependency_overrides.clear()
    await engine.dispose()


@pytest.fixture()
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture()
async def catalog(db_session: AsyncSession) -> Dict[str, UUID]:
    """Grade 11/12, ACAD (STEM, GAS) and TVL (ICT)."""
    g11 = GradeLevel(grade_level=11)
    g12 = GradeLevel(grade_level=12)
    acad = Track(track_code="ACAD", track_name="Academic")
    tvl = Track(track_code="TVL", track_name="Technical-Vocational-Livelihood")
    db_session.add_all([g11, g12, acad, tvl])
    await db_session.flush()
    stem = Strand(track_id=acad.id, strand_code="STEM")
    gas = Strand(track_id=acad.id, strand_code="GAS")
    ict = Strand(track_id=tvl.id, strand_code="ICT")
    db_session.add_all([stem, gas, ict])
    await db_session.commit()
    return {
        "g11": g11.id,
        "g12": g12.id,
        "acad": acad.id,
        "tvl": tvl.id,
        "stem": stem.id,
        "gas": gas.id,
        "ict": ict.id,
    }


@pytest.fixture()
async def active_year(db_session: AsyncSession) -> SchoolYear:
    sy = SchoolYear(
        sy_code="2025-2026",
        status="Active",
        start_date=date(2025, 6, 1),
        end_date=date(2026, 3, 31),
    )
    db_session.add(sy)
    await db_session.commit()
    return sy


@pytest.fixture()
async def unclassified(db_session: AsyncSession, active_year: SchoolYear) -> Section:
    sec = Section(sy_id=active_year.id, section_name="Unclassified", is_archived=False)
    db_session.add(sec)
    await db_session.commit()
    return sec


async def add_section(db: AsyncSession, sy_id: UUID, name: str, grade_id, track_id, strand_id=None, **kw) -> Section:
    sec = Section(
        sy_id=sy_id,
        section_name=name,
        grade_id=grade_id,
        track_id=track_id,
        strand_id=strand_id,
        is_archived=kw.pop("is_archived", False),
    )
    db.add(sec)
    await db.commit()
    return sec


async def add_students(
    db: AsyncSession,
    sy_id: UUID,
    count: int,
    *,
    prefix: str,
    grade_id=None,
    track_id=None,
    strand_id=None,
    section_id=None,
    gender="Male",
    status="Enrolled",
):
    rows = [
        Student(
            sy_id=sy_id,
            student_number=f"{prefix}-{i:03d}",
            first_name=f"First{i}",
            last_name=f"{prefix}{i:03d}",
            gender=gender,
            status=status,
            grade_id=grade_id,
            track_id=track_id,
            strand_id=strand_id,
            section_id=section_id,
        )
        for i in range(count)
    ]
    db.add_all(rows)
    await db.commit()
    return rows
