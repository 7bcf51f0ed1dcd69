"""Shared test infrastructure for the LabLink test suite.

Provides:
- session_factory: async SQLite session factory on a per-test database file
- db_session: a session from that factory
- make_lab: factory for Lab rows (+ optional specialization / pricing / metrics)
- make_preference: factory for PreferredLab rows
- make_review: factory for LabReview rows
- make_order: factory for Order rows
- build_client: HTTPX AsyncClient wired to a test app with one router

A file database (rather than ``sqlite+aiosqlite://``) lets the parallel
ranking readers each hold their own connection.
"""

import uuid

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Import Base first, then models to register all tables
from lablink.infra.database import Base

import lablink.domain.models  # noqa: F401

from lablink.domain.models import (
    Lab,
    LabPerformanceMetrics,
    LabPricing,
    LabReview,
    LabSpecialization,
    Order,
    PreferredLab,
)


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
async def session_factory(tmp_path):
    """Session factory bound to a fresh SQLite file with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'lablink_test.db'}",
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield factory

    await engine.dispose()


@pytest.fixture
async def db_session(session_factory):
    """Session used by tests to seed rows; factories commit through it."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

@pytest.fixture
def make_lab(db_session):
    """Factory that creates a Lab and, optionally, its auxiliary rows.

    Usage:
        lab = await make_lab(name="Cairo Dental", expertise="expert")
    """
    async def _factory(
        name: str = "Test Lab",
        *,
        id: str | None = None,
        trust_score: float = 4.0,
        is_new_lab: bool = False,
        visibility_tier: str = "established",
        standard_sla_days: int = 7,
        urgent_sla_days: int = 3,
        current_load: int = 2,
        max_capacity: int = 10,
        performance_score: float | None = 4.0,
        is_active: bool = True,
        min_price_egp: float | None = None,
        max_price_egp: float | None = None,
        restoration_type: str = "Zirconia",
        expertise: str | None = None,
        turnaround_days: int | None = None,
        fixed_price: float | None = None,
        completed_orders: int | None = None,
        on_time_deliveries: int = 0,
    ) -> Lab:
        lab_id = id or str(uuid.uuid4())
        lab = Lab(
            id=lab_id,
            name=name,
            trust_score=trust_score,
            is_new_lab=is_new_lab,
            visibility_tier=visibility_tier,
            standard_sla_days=standard_sla_days,
            urgent_sla_days=urgent_sla_days,
            current_load=current_load,
            max_capacity=max_capacity,
            performance_score=performance_score,
            is_active=is_active,
            min_price_egp=min_price_egp,
            max_price_egp=max_price_egp,
        )
        db_session.add(lab)

        if expertise:
            db_session.add(LabSpecialization(
                id=str(uuid.uuid4()),
                lab_id=lab_id,
                restoration_type=restoration_type,
                expertise_level=expertise,
                turnaround_days=turnaround_days,
            ))

        if fixed_price is not None:
            db_session.add(LabPricing(
                id=str(uuid.uuid4()),
                lab_id=lab_id,
                restoration_type=restoration_type,
                fixed_price=fixed_price,
                includes_rush=False,
                rush_surcharge_percent=25,
            ))

        if completed_orders is not None:
            db_session.add(LabPerformanceMetrics(
                id=str(uuid.uuid4()),
                lab_id=lab_id,
                completed_orders=completed_orders,
                on_time_deliveries=on_time_deliveries,
                total_orders=completed_orders,
            ))

        await db_session.commit()
        return lab

    return _factory


@pytest.fixture
def make_preference(db_session):
    """Factory that records a dentist's preferred lab."""
    async def _factory(dentist_id: str, lab_id: str, priority_order: int = 1) -> PreferredLab:
        pref = PreferredLab(
            id=str(uuid.uuid4()),
            dentist_id=dentist_id,
            lab_id=lab_id,
            priority_order=priority_order,
        )
        db_session.add(pref)
        await db_session.commit()
        return pref

    return _factory


@pytest.fixture
def make_review(db_session):
    """Factory that adds one rating for a lab."""
    async def _factory(lab_id: str, rating: int) -> LabReview:
        review = LabReview(id=str(uuid.uuid4()), lab_id=lab_id, rating=rating)
        db_session.add(review)
        await db_session.commit()
        return review

    return _factory


@pytest.fixture
def make_order(db_session):
    """Factory that creates an unassigned Order row."""
    async def _factory(
        doctor_id: str = "doc-1",
        restoration_type: str = "Zirconia",
        urgency: str = "Normal",
    ) -> Order:
        order = Order(
            id=str(uuid.uuid4()),
            order_number=f"ORD-TEST-{uuid.uuid4().hex[:6].upper()}",
            doctor_id=doctor_id,
            doctor_name="Dr. Test",
            patient_name="Test Patient",
            restoration_type=restoration_type,
            teeth_shade="A2",
            shade_system="VITA Classical",
            teeth_number="11",
            urgency=urgency,
        )
        db_session.add(order)
        await db_session.commit()
        return order

    return _factory


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest.fixture
def build_client(session_factory):
    """Build an HTTPX AsyncClient wired to a test FastAPI app.

    Uses a fresh FastAPI app with only the given router to avoid the
    production lifespan and its database.
    """
    def _build(router) -> AsyncClient:
        from fastapi import FastAPI
        from lablink.infra.database import get_db, get_session_factory

        test_app = FastAPI()
        test_app.include_router(router)

        async def _override_get_db():
            async with session_factory() as session:
                yield session

        test_app.dependency_overrides[get_db] = _override_get_db
        test_app.dependency_overrides[get_session_factory] = lambda: session_factory

        return AsyncClient(
            transport=ASGITransport(app=test_app),
            base_url="http://testserver",
        )

    return _build
