"""Deterministic lab scoring policies.

Pure-function module: NO database access.

Two policies rank labs for a (restoration type, urgency, dentist) request:

    ClientShortlistPolicy
        Short-list shown to a dentist.  Labs at full capacity are dropped,
        the rest are ordered by a composite sort key:
            1. preferred labs first
            2. trust score, where scores within 0.3 of each other tie
            3. has a specialization for the restoration type
            4. visibility tier (elite > trusted > established > emerging)
            5. on-time delivery rate
        The list is cut to ``limit`` and then passed through the
        VisibilityPolicy so new labs never sit in the top three.

    AutoAssignPolicy
        Additive points used to pick exactly one lab automatically.  No
        capacity filter; a full lab just earns no capacity points.
            Specialization  (max 40)
            Capacity        (max 25)
            Preferred lab   (max 20)
            Performance     (max 15)

Both consume a ``RankingSnapshot`` of plain dicts and never mutate it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Protocol, Sequence

from lablink.services.lab_directory import RankingSnapshot

# ── Client short-list constants ──────────────────────────────────────────────

# Trust scores closer than this fall through to the next criterion
TRUST_TIE_THRESHOLD = 0.3

TIER_RANK = {
    "elite": 4,
    "trusted": 3,
    "established": 2,
    "emerging": 1,
}

DEFAULT_SHORTLIST_LIMIT = 5

# New labs may not occupy ranks above this one
NEW_LAB_MIN_RANK = 4

# ── Auto-assign constants ────────────────────────────────────────────────────

EXPERTISE_POINTS = {
    "expert": 40,
    "intermediate": 25,
    "basic": 15,
}
NO_SPECIALIZATION_POINTS = 5

CAPACITY_LOW_RATIO = 0.5
CAPACITY_MODERATE_RATIO = 0.8
CAPACITY_LOW_POINTS = 25
CAPACITY_MODERATE_POINTS = 15
CAPACITY_HIGH_POINTS = 5

PREFERRED_MAX_POINTS = 20
PREFERRED_STEP = 5
PREFERRED_MIN_POINTS = 5

PERFORMANCE_MAX_POINTS = 15
PERFORMANCE_SCALE = 5.0
# Labs without a performance score are treated as top performers
DEFAULT_PERFORMANCE_SCORE = 5.0

MIN_TOTAL_SCORE = NO_SPECIALIZATION_POINTS
MAX_TOTAL_SCORE = (
    EXPERTISE_POINTS["expert"]
    + CAPACITY_LOW_POINTS
    + PREFERRED_MAX_POINTS
    + PERFORMANCE_MAX_POINTS
)


# ── Result types ─────────────────────────────────────────────────────────────

@dataclass
class RankedLab:
    """A lab enriched for display, with its position in the short-list."""
    id: str
    name: str
    trust_score: float = 0.0
    min_price_egp: Optional[float] = None
    max_price_egp: Optional[float] = None
    is_new_lab: bool = False
    visibility_tier: str = "emerging"
    standard_sla_days: Optional[int] = None
    urgent_sla_days: Optional[int] = None
    current_load: int = 0
    max_capacity: int = 0
    performance_score: Optional[float] = None
    description: Optional[str] = None
    pricing: Optional[dict] = None
    specialization: Optional[dict] = None
    average_rating: Optional[float] = None
    total_reviews: int = 0
    completed_orders: int = 0
    on_time_rate: float = 0.0
    estimated_delivery_days: Optional[int] = None
    rank: int = 0


@dataclass
class LabScore:
    """Auto-assign points for one lab plus the human-readable trail."""
    lab_id: str
    score: float
    reasons: list[str] = field(default_factory=list)

    @property
    def reason(self) -> str:
        return ", ".join(self.reasons)


class LabScoringPolicy(Protocol):
    """Orders the labs in a snapshot for one request."""

    name: str

    def rank(
        self,
        snapshot: RankingSnapshot,
        restoration_type: str,
        urgency: str,
    ) -> Sequence: ...


# ── Helpers ──────────────────────────────────────────────────────────────────

def _first_for_lab(rows: list[dict], lab_id: str, restoration_type: str) -> Optional[dict]:
    """At most one pricing/specialization row counts per (lab, type)."""
    for row in rows:
        if row.get("lab_id") == lab_id and row.get("restoration_type", restoration_type) == restoration_type:
            return row
    return None


def is_at_capacity(lab: dict) -> bool:
    load = lab.get("current_load") or 0
    capacity = lab.get("max_capacity") or 0
    return load >= capacity


def assign_trust_buckets(trust_scores: Sequence[float], threshold: float = TRUST_TIE_THRESHOLD) -> list[int]:
    """Group trust scores into tie buckets, best bucket = 0.

    Walking scores from highest to lowest, a score opens a new bucket when
    it is more than ``threshold`` below the score that opened the current
    bucket.  Any two labs in one bucket are therefore within ``threshold``
    of each other, and bucket order always follows trust order, which gives
    a strict total order that does not depend on the sort algorithm.
    """
    order = sorted(range(len(trust_scores)), key=lambda i: -trust_scores[i])
    buckets = [0] * len(trust_scores)
    bucket = -1
    leader: Optional[float] = None
    for i in order:
        score = trust_scores[i]
        if leader is None or leader - score > threshold:
            bucket += 1
            leader = score
        buckets[i] = bucket
    return buckets


def estimate_delivery_days(lab: dict, specialization: Optional[dict], urgency: str) -> Optional[int]:
    """Specialization turnaround if known, else the lab's SLA for the urgency."""
    if specialization and specialization.get("turnaround_days"):
        return specialization["turnaround_days"]
    if urgency == "Urgent":
        return lab.get("urgent_sla_days")
    return lab.get("standard_sla_days")


def enrich_lab(
    lab: dict,
    snapshot: RankingSnapshot,
    restoration_type: str,
    urgency: str,
) -> RankedLab:
    """Attach pricing, specialization, review and delivery facts to a lab."""
    lab_id = lab["id"]
    ratings = [r["rating"] for r in snapshot.reviews if r.get("lab_id") == lab_id]
    metrics = next((m for m in snapshot.metrics if m.get("lab_id") == lab_id), None)
    specialization = _first_for_lab(snapshot.specializations, lab_id, restoration_type)

    completed = (metrics or {}).get("completed_orders") or 0
    on_time = (metrics or {}).get("on_time_deliveries") or 0
    on_time_rate = (on_time / completed) * 100 if completed > 0 else 0.0

    return RankedLab(
        id=lab_id,
        name=lab.get("name", ""),
        trust_score=lab.get("trust_score") or 0.0,
        min_price_egp=lab.get("min_price_egp"),
        max_price_egp=lab.get("max_price_egp"),
        is_new_lab=bool(lab.get("is_new_lab")),
        visibility_tier=lab.get("visibility_tier") or "emerging",
        standard_sla_days=lab.get("standard_sla_days"),
        urgent_sla_days=lab.get("urgent_sla_days"),
        current_load=lab.get("current_load") or 0,
        max_capacity=lab.get("max_capacity") or 0,
        performance_score=lab.get("performance_score"),
        description=lab.get("description"),
        pricing=_first_for_lab(snapshot.pricing, lab_id, restoration_type),
        specialization=specialization,
        average_rating=sum(ratings) / len(ratings) if ratings else None,
        total_reviews=len(ratings),
        completed_orders=completed,
        on_time_rate=on_time_rate,
        estimated_delivery_days=estimate_delivery_days(lab, specialization, urgency),
    )


# ── Visibility policy ────────────────────────────────────────────────────────

@dataclass
class VisibilityPolicy:
    """Keeps new labs out of the top ranks of a short-list.

    A new lab ranked above ``min_rank`` is pushed down to ``min_rank`` and
    the list is stably re-sorted by rank, so a pushed lab lands ahead of
    the lab that already held ``min_rank``.  By default both keep the same
    rank number.  With ``renumber_ties`` each later duplicate is bumped
    one past its predecessor instead, so ranks stay unique.

    Gaps are never closed: when a new lab is pushed down from rank 1 the
    list starts at rank 2.  Closing them would lift the pushed lab back
    above ``min_rank``.
    """
    min_rank: int = NEW_LAB_MIN_RANK
    renumber_ties: bool = False

    def apply(self, ranked: Sequence[RankedLab]) -> list[RankedLab]:
        pushed = [
            replace(lab, rank=max(lab.rank, self.min_rank)) if lab.is_new_lab else lab
            for lab in ranked
        ]
        pushed.sort(key=lambda lab: lab.rank)

        if self.renumber_ties:
            previous = 0
            for i, lab in enumerate(pushed):
                if lab.rank <= previous:
                    pushed[i] = replace(lab, rank=previous + 1)
                previous = pushed[i].rank

        return pushed


# ── Client short-list policy ─────────────────────────────────────────────────

@dataclass
class ClientShortlistPolicy:
    """Ranks labs for display to a dentist. Read-only."""
    limit: int = DEFAULT_SHORTLIST_LIMIT
    visibility: VisibilityPolicy = field(default_factory=VisibilityPolicy)
    name: str = "client_shortlist"

    def rank(
        self,
        snapshot: RankingSnapshot,
        restoration_type: str,
        urgency: str,
    ) -> list[RankedLab]:
        preferred_ids = {p["lab_id"] for p in snapshot.preferred_labs}

        candidates = [
            enrich_lab(lab, snapshot, restoration_type, urgency)
            for lab in snapshot.labs
            if not is_at_capacity(lab)
        ]

        keys = self._sort_keys(candidates, preferred_ids)
        ordered = [lab for _, lab in sorted(zip(keys, candidates), key=lambda pair: pair[0])]

        top = [replace(lab, rank=i + 1) for i, lab in enumerate(ordered)][: max(self.limit, 0)]
        return self.visibility.apply(top)

    @staticmethod
    def _sort_keys(candidates: list[RankedLab], preferred_ids: set[str]) -> list[tuple]:
        """One composite key per lab; index last keeps directory order on ties."""
        buckets = [0] * len(candidates)
        for group in (True, False):
            members = [i for i, lab in enumerate(candidates) if (lab.id in preferred_ids) is group]
            group_buckets = assign_trust_buckets([candidates[i].trust_score for i in members])
            for i, bucket in zip(members, group_buckets):
                buckets[i] = bucket

        return [
            (
                0 if lab.id in preferred_ids else 1,
                buckets[i],
                0 if lab.specialization else 1,
                -TIER_RANK.get(lab.visibility_tier, 0),
                -lab.on_time_rate,
                i,
            )
            for i, lab in enumerate(candidates)
        ]


# ── Auto-assign policy ───────────────────────────────────────────────────────

def _specialization_points(specialization: Optional[dict]) -> tuple[int, str]:
    if not specialization:
        return NO_SPECIALIZATION_POINTS, "No specialization"
    level = specialization.get("expertise_level")
    if level == "expert":
        return EXPERTISE_POINTS["expert"], "Expert specialization"
    if level == "intermediate":
        return EXPERTISE_POINTS["intermediate"], "Intermediate specialization"
    return EXPERTISE_POINTS["basic"], "Basic specialization"


def _capacity_points(lab: dict) -> tuple[int, str]:
    load = lab.get("current_load") or 0
    capacity = lab.get("max_capacity") or 0
    ratio = load / capacity if capacity > 0 else float("inf")

    if ratio >= 1:
        return 0, "At capacity"
    if ratio < CAPACITY_LOW_RATIO:
        return CAPACITY_LOW_POINTS, "Low workload"
    if ratio < CAPACITY_MODERATE_RATIO:
        return CAPACITY_MODERATE_POINTS, "Moderate workload"
    return CAPACITY_HIGH_POINTS, "High workload"


def _preferred_points(preferred_index: Optional[int]) -> tuple[int, Optional[str]]:
    if preferred_index is None:
        return 0, None
    bonus = max(PREFERRED_MAX_POINTS - preferred_index * PREFERRED_STEP, PREFERRED_MIN_POINTS)
    return bonus, f"Preferred #{preferred_index + 1}"


def _performance_points(lab: dict) -> tuple[float, str]:
    performance = lab.get("performance_score")
    if performance is None:
        performance = DEFAULT_PERFORMANCE_SCORE
    performance = min(max(float(performance), 0.0), PERFORMANCE_SCALE)
    return (performance / PERFORMANCE_SCALE) * PERFORMANCE_MAX_POINTS, f"Performance: {performance:g}/5"


def score_lab_for_assignment(
    lab: dict,
    specialization: Optional[dict],
    preferred_index: Optional[int],
) -> LabScore:
    """Additive auto-assign score for a single lab (5-100 points)."""
    score = 0.0
    reasons: list[str] = []

    for points, reason in (
        _specialization_points(specialization),
        _capacity_points(lab),
        _preferred_points(preferred_index),
        _performance_points(lab),
    ):
        score += points
        if reason:
            reasons.append(reason)

    return LabScore(lab_id=lab["id"], score=score, reasons=reasons)


@dataclass
class AutoAssignPolicy:
    """Scores every active lab; the first entry of ``rank`` is the winner."""
    name: str = "auto_assign"

    def rank(
        self,
        snapshot: RankingSnapshot,
        restoration_type: str,
        urgency: str,
    ) -> list[LabScore]:
        preferred_order = [p["lab_id"] for p in snapshot.preferred_labs]

        scores = []
        for lab in snapshot.labs:
            preferred_index = preferred_order.index(lab["id"]) if lab["id"] in preferred_order else None
            scores.append(
                score_lab_for_assignment(
                    lab,
                    _first_for_lab(snapshot.specializations, lab["id"], restoration_type),
                    preferred_index,
                )
            )

        # Stable: equal scores keep directory order
        return sorted(scores, key=lambda s: -s.score)
