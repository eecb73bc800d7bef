"""
Scoring engine.

A staff member's score for a period is the weighted share of met KPIs among
the KPIs reviewed in that period:

    round(100 * sum(weight of met items) / sum(weight of all items))

Unknown or unapproved staff, and periods without review items, score 0.
Weights come from the full KPI lookup so soft-deleted KPIs keep counting for
the reviews recorded while they were active.
"""
import logging
import math
import threading
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from clinreview.core.config import settings
from clinreview.core.periods import Period
from clinreview.services.entity_store import Collection, EntityStore
from clinreview.services.hierarchy import HierarchyResolver
from clinreview.services.records import KPIRecord, ProfileRecord, ReviewRecord

logger = logging.getLogger(__name__)

# Collections whose changes invalidate cached scores
_SCORE_INPUTS = {Collection.KPIS, Collection.PROFILES, Collection.REVIEW_ITEMS}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percentage(earned: int, possible: int) -> int:
    if possible <= 0:
        return 0
    return round_half_up(100 * earned / possible)


@dataclass
class ScoreLine:
    review_id: int
    kpi_id: int
    kpi_title: str
    weight: int
    met: bool

    @property
    def earned(self) -> int:
        return self.weight if self.met else 0


@dataclass
class ScoreBreakdown:
    staff_id: int
    period_key: str
    lines: List[ScoreLine] = field(default_factory=list)

    @property
    def possible_weight(self) -> int:
        return sum(line.weight for line in self.lines)

    @property
    def earned_weight(self) -> int:
        return sum(line.earned for line in self.lines)

    @property
    def met_count(self) -> int:
        return sum(1 for line in self.lines if line.met)

    @property
    def not_met_count(self) -> int:
        return len(self.lines) - self.met_count

    @property
    def score(self) -> int:
        return percentage(self.earned_weight, self.possible_weight)


def _is_scorable(staff_id: int, profiles: Iterable[ProfileRecord]) -> bool:
    profile = next((p for p in profiles if p.id == staff_id), None)
    return profile is not None and profile.accept


def score_breakdown(
    staff_id: int,
    period: Period,
    profiles: Iterable[ProfileRecord],
    kpis: Mapping[int, KPIRecord],
    review_items: Iterable[ReviewRecord],
) -> ScoreBreakdown:
    breakdown = ScoreBreakdown(staff_id=staff_id, period_key=period.key)
    if not _is_scorable(staff_id, profiles):
        return breakdown

    for item in review_items:
        if item.staff_id != staff_id or not period.contains(item.date):
            continue
        kpi = kpis.get(item.kpi_id)
        if kpi is None:
            logger.debug(f"Review {item.id} references unknown KPI {item.kpi_id}; skipped")
            continue
        breakdown.lines.append(ScoreLine(
            review_id=item.id,
            kpi_id=kpi.id,
            kpi_title=kpi.title,
            weight=kpi.weight,
            met=item.met,
        ))
    return breakdown


def compute_score(
    staff_id: int,
    period: Period,
    profiles: Iterable[ProfileRecord],
    kpis: Mapping[int, KPIRecord],
    review_items: Iterable[ReviewRecord],
) -> int:
    """Integer percentage in [0, 100]."""
    return score_breakdown(staff_id, period, profiles, kpis, review_items).score


def trend_direction(scores: Sequence[int]) -> Tuple[str, int]:
    """
    Compare the last two points of a series. Moves smaller than two points
    are reported as stable.
    """
    if len(scores) < 2:
        return "stable", 0
    difference = scores[-1] - scores[-2]
    if abs(difference) < 2:
        return "stable", 0
    return ("up" if difference > 0 else "down"), abs(difference)


class ScoreCalculator:
    """
    Store-backed scoring with a cache keyed by (staff_id, period).
    The cache is dropped whenever KPIs, profiles or review items change.
    """

    def __init__(self, store: EntityStore, use_cache: Optional[bool] = None):
        self.store = store
        self.use_cache = settings.enable_caching if use_cache is None else use_cache
        self._cache: Dict[Tuple[int, Period], int] = {}
        self._lock = threading.Lock()
        self._unsubscribe = store.subscribe(self._on_change)

    def _on_change(self, collection: Collection):
        if collection in _SCORE_INPUTS:
            self.invalidate()

    def invalidate(self):
        with self._lock:
            self._cache.clear()

    def close(self):
        self._unsubscribe()

    def _input_versions(self) -> Tuple[int, ...]:
        return tuple(self.store.version(c) for c in _SCORE_INPUTS)

    def score(self, staff_id: int, period: Period) -> int:
        key = (staff_id, period)
        if self.use_cache:
            with self._lock:
                if key in self._cache:
                    return self._cache[key]
        seen = self._input_versions()
        value = compute_score(
            staff_id, period, self.store.profiles, self.store.kpi_lookup(), self.store.review_items
        )
        if self.use_cache:
            with self._lock:
                # a snapshot swapped in mid-compute makes this value stale
                if self._input_versions() == seen:
                    self._cache[key] = value
        return value

    def breakdown(self, staff_id: int, period: Period) -> ScoreBreakdown:
        return score_breakdown(
            staff_id, period, self.store.profiles, self.store.kpi_lookup(), self.store.review_items
        )

    def trend(self, staff_id: int, periods: Sequence[Period]) -> List[int]:
        return [self.score(staff_id, period) for period in periods]

    # --- team views ---

    def _resolver(self) -> HierarchyResolver:
        return HierarchyResolver(self.store.profiles, self.store.assignments)

    def team_members(self, director_id: int) -> List[ProfileRecord]:
        resolver = self._resolver()
        return resolver.assigned_clinicians(director_id) + resolver.assigned_directors(director_id)

    def team_average(self, director_id: int, period: Period) -> int:
        """
        Mean score of everyone a director supervises. Members without a score
        still count in the denominator.
        """
        members = self.team_members(director_id)
        if not members:
            return 0
        scores = [self.score(member.id, period) for member in members]
        if not any(scores):
            return 0
        return round_half_up(sum(scores) / len(scores))

    def team_trend(self, director_id: int, periods: Sequence[Period]) -> List[int]:
        return [self.team_average(director_id, period) for period in periods]

    def performance_bands(self, staff: Iterable[ProfileRecord], period: Period) -> Dict[str, List[ProfileRecord]]:
        """Split staff into top performers and those needing attention."""
        top, attention = [], []
        for member in staff:
            value = self.score(member.id, period)
            if value >= settings.top_performer_threshold:
                top.append(member)
            if value < settings.attention_threshold:
                attention.append(member)
        return {"top_performers": top, "needs_attention": attention}
