"""Lab directory readers.

Each reader is a single SELECT returning plain dicts keyed by the column
names of the underlying table, so the scoring code never touches ORM
objects.  The readers share no state and may run concurrently; see
``load_ranking_snapshot``.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lablink.domain.models import (
    Lab,
    LabPerformanceMetrics,
    LabPricing,
    LabReview,
    LabSpecialization,
    PreferredLab,
)

logger = logging.getLogger(__name__)

LAB_COLUMNS = (
    "id",
    "name",
    "trust_score",
    "min_price_egp",
    "max_price_egp",
    "is_new_lab",
    "visibility_tier",
    "standard_sla_days",
    "urgent_sla_days",
    "current_load",
    "max_capacity",
    "performance_score",
    "description",
)
PRICING_COLUMNS = (
    "lab_id",
    "restoration_type",
    "fixed_price",
    "min_price",
    "max_price",
    "includes_rush",
    "rush_surcharge_percent",
)
SPECIALIZATION_COLUMNS = ("lab_id", "restoration_type", "expertise_level", "turnaround_days")
REVIEW_COLUMNS = ("lab_id", "rating")
METRICS_COLUMNS = ("lab_id", "completed_orders", "on_time_deliveries", "total_orders")
PREFERENCE_COLUMNS = ("lab_id", "priority_order")


def _columns(model, names: tuple[str, ...]) -> list:
    return [getattr(model, name) for name in names]


async def _fetch(session: AsyncSession, stmt, names: tuple[str, ...]) -> list[dict]:
    result = await session.execute(stmt)
    return [dict(zip(names, row)) for row in result.all()]


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


async def fetch_active_labs(session: AsyncSession) -> list[dict]:
    """Active labs, best trust score first (id breaks ties)."""
    stmt = (
        select(*_columns(Lab, LAB_COLUMNS))
        .where(Lab.is_active.is_(True))
        .order_by(Lab.trust_score.desc(), Lab.id)
    )
    return await _fetch(session, stmt, LAB_COLUMNS)


async def fetch_lab_pricing(session: AsyncSession, restoration_type: str) -> list[dict]:
    stmt = (
        select(*_columns(LabPricing, PRICING_COLUMNS))
        .where(LabPricing.restoration_type == restoration_type)
        .order_by(LabPricing.lab_id)
    )
    return await _fetch(session, stmt, PRICING_COLUMNS)


async def fetch_lab_specializations(session: AsyncSession, restoration_type: str) -> list[dict]:
    stmt = (
        select(*_columns(LabSpecialization, SPECIALIZATION_COLUMNS))
        .where(LabSpecialization.restoration_type == restoration_type)
        .order_by(LabSpecialization.lab_id)
    )
    return await _fetch(session, stmt, SPECIALIZATION_COLUMNS)


async def fetch_lab_reviews(session: AsyncSession) -> list[dict]:
    stmt = select(*_columns(LabReview, REVIEW_COLUMNS))
    return await _fetch(session, stmt, REVIEW_COLUMNS)


async def fetch_lab_metrics(session: AsyncSession) -> list[dict]:
    stmt = select(*_columns(LabPerformanceMetrics, METRICS_COLUMNS))
    return await _fetch(session, stmt, METRICS_COLUMNS)


async def fetch_preferred_labs(session: AsyncSession, dentist_id: str | None) -> list[dict]:
    """A dentist's preferred labs, most preferred first.

    Returns an empty list when no dentist is given, mirroring a disabled
    query on the client.
    """
    if not dentist_id:
        return []
    stmt = (
        select(*_columns(PreferredLab, PREFERENCE_COLUMNS))
        .where(PreferredLab.dentist_id == dentist_id)
        .order_by(PreferredLab.priority_order, PreferredLab.lab_id)
    )
    return await _fetch(session, stmt, PREFERENCE_COLUMNS)


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass
class RankingSnapshot:
    """Every row the scoring policies need for one restoration type."""
    labs: list[dict] = field(default_factory=list)
    pricing: list[dict] = field(default_factory=list)
    specializations: list[dict] = field(default_factory=list)
    reviews: list[dict] = field(default_factory=list)
    metrics: list[dict] = field(default_factory=list)
    preferred_labs: list[dict] = field(default_factory=list)


async def load_ranking_snapshot(
    session_factory: async_sessionmaker,
    restoration_type: str,
    dentist_id: str | None,
) -> RankingSnapshot:
    """Run all readers in parallel, one session each.

    Any reader failure propagates to the caller; no partial snapshot is
    ever returned.
    """

    async def _run(reader, *args):
        async with session_factory() as session:
            return await reader(session, *args)

    labs, pricing, specializations, reviews, metrics, preferred = await asyncio.gather(
        _run(fetch_active_labs),
        _run(fetch_lab_pricing, restoration_type),
        _run(fetch_lab_specializations, restoration_type),
        _run(fetch_lab_reviews),
        _run(fetch_lab_metrics),
        _run(fetch_preferred_labs, dentist_id),
    )

    logger.debug(
        "Loaded ranking snapshot for %s: %d labs, %d pricing, %d specializations, %d preferred",
        restoration_type,
        len(labs),
        len(pricing),
        len(specializations),
        len(preferred),
    )

    return RankingSnapshot(
        labs=labs,
        pricing=pricing,
        specializations=specializations,
        reviews=reviews,
        metrics=metrics,
        preferred_labs=preferred,
    )
