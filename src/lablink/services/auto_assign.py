"""Automatic lab assignment for new orders.

Scores every active lab with the auto-assign policy, picks the top one,
and writes it onto the order.  The write is the only side effect; if it
fails the whole assignment fails and the scoring work is discarded.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lablink.domain.models import Order
from lablink.services.errors import AssignmentWriteError, NoEligibleLabsError
from lablink.services.lab_directory import load_ranking_snapshot
from lablink.services.lab_scoring import AutoAssignPolicy

logger = logging.getLogger(__name__)


@dataclass
class AssignmentResult:
    """The lab written onto the order and why it won."""
    order_id: str
    assigned_lab_id: str
    score: float
    reason: str


async def write_assignment(session: AsyncSession, order_id: str, lab_id: str) -> None:
    """Persist ``lab_id`` as the order's assigned lab in one UPDATE.

    Raises:
        AssignmentWriteError: If the order does not exist or the write fails.
    """
    try:
        result = await session.execute(
            update(Order)
            .where(Order.id == order_id)
            .values(assigned_lab_id=lab_id)
        )
        if result.rowcount == 0:
            await session.rollback()
            raise AssignmentWriteError(f"Order {order_id} not found")
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise AssignmentWriteError(f"Failed to assign lab to order {order_id}: {exc}") from exc


async def auto_assign_lab(
    session_factory: async_sessionmaker,
    order_id: str,
    restoration_type: str,
    urgency: str,
    doctor_id: str | None,
    policy: AutoAssignPolicy | None = None,
) -> AssignmentResult:
    """Pick the best lab for an order and assign it.

    Raises:
        NoEligibleLabsError: If there are no active labs to score.
        AssignmentWriteError: If the assignment could not be persisted.
        sqlalchemy.exc.SQLAlchemyError: If any read fails.
    """
    logger.info(
        "Auto-assigning lab for order %s (type=%s, urgency=%s, doctor=%s)",
        order_id,
        restoration_type,
        urgency,
        doctor_id,
    )

    snapshot = await load_ranking_snapshot(session_factory, restoration_type, doctor_id)
    policy = policy or AutoAssignPolicy()
    scores = policy.rank(snapshot, restoration_type, urgency)

    for entry in scores:
        logger.debug("Lab %s: %s points - %s", entry.lab_id, entry.score, entry.reason)

    if not scores:
        raise NoEligibleLabsError()

    selected = scores[0]
    logger.info(
        "Selected lab %s for order %s with %s points (%s)",
        selected.lab_id,
        order_id,
        selected.score,
        selected.reason,
    )

    async with session_factory() as session:
        await write_assignment(session, order_id, selected.lab_id)

    return AssignmentResult(
        order_id=order_id,
        assigned_lab_id=selected.lab_id,
        score=selected.score,
        reason=selected.reason,
    )
