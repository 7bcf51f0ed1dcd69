"""Lab short-list for the order form.

Loads a ranking snapshot and runs the client short-list policy over it.
Read-only: nothing is written and nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import async_sessionmaker

from lablink.services.lab_directory import load_ranking_snapshot
from lablink.services.lab_scoring import (
    DEFAULT_SHORTLIST_LIMIT,
    ClientShortlistPolicy,
    RankedLab,
    VisibilityPolicy,
)

logger = logging.getLogger(__name__)


@dataclass
class LabRankingResult:
    """Short-list plus the dentist's preferred lab ids.

    ``is_loading`` is always False once the coroutine has returned; it is
    kept so the payload matches what the order form expects.
    """
    ranked_labs: list[RankedLab] = field(default_factory=list)
    preferred_lab_ids: list[str] = field(default_factory=list)
    is_loading: bool = False


async def rank_labs(
    session_factory: async_sessionmaker,
    restoration_type: str,
    urgency: str,
    user_id: str | None,
    limit: int = DEFAULT_SHORTLIST_LIMIT,
    visibility: VisibilityPolicy | None = None,
) -> LabRankingResult:
    """Rank active labs for a dentist's order.

    Args:
        session_factory: Factory used to open one session per reader.
        restoration_type: Restoration type of the order (e.g. "Zirconia").
        urgency: "Normal" or "Urgent"; picks which SLA estimates delivery.
        user_id: The requesting dentist; preferences are skipped when empty.
        limit: Maximum number of labs to return.
        visibility: Override for the new-lab placement rule.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: If any read fails.
    """
    snapshot = await load_ranking_snapshot(session_factory, restoration_type, user_id)

    policy = ClientShortlistPolicy(
        limit=limit,
        visibility=visibility or VisibilityPolicy(),
    )
    ranked = policy.rank(snapshot, restoration_type, urgency)

    logger.info(
        "Ranked %d of %d labs for %s (%s, user=%s)",
        len(ranked),
        len(snapshot.labs),
        restoration_type,
        urgency,
        user_id,
    )

    return LabRankingResult(
        ranked_labs=ranked,
        preferred_lab_ids=[p["lab_id"] for p in snapshot.preferred_labs],
    )
