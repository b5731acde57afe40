"""Single-pass aggregation over one owner's opportunities."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, Optional

from crm_insights.models.opportunity import Opportunity
from crm_insights.store.base import RowStore, fetch_all

# Dimension name -> projection of an opportunity onto its rollup key
ROLLUP_DIMENSIONS: dict[str, Callable[[Opportunity], str]] = {
    "seller": lambda o: o.seller,
    "lead_source": lambda o: o.lead_source,
    "funnel": lambda o: o.funnel,
    "region": lambda o: o.region_code,
    "city": lambda o: o.city,
    "product": lambda o: o.product,
}


def conversion_rate(won: int, total: int) -> str:
    """Won/total as a percentage string; "0%" when total is zero."""
    if total <= 0:
        return "0%"
    return f"{won / total * 100:.1f}%"


def month_key(value: datetime) -> tuple[int, int]:
    return (value.year, value.month)


def month_label(key: tuple[int, int]) -> str:
    year, month = key
    return f"{month:02d}/{year}"


@dataclass
class AggregationBucket:
    """Running counters for one dimension value or composite key."""

    total: int = 0
    won_count: int = 0
    lost_count: int = 0
    amount_sum: float = 0.0
    won_amount_sum: float = 0.0
    lost_amount_sum: float = 0.0

    def add(self, opp: Opportunity) -> None:
        self.total += 1
        self.amount_sum += opp.amount
        if opp.is_won:
            self.won_count += 1
            self.won_amount_sum += opp.amount
        elif opp.is_lost:
            self.lost_count += 1
            self.lost_amount_sum += opp.amount

    @property
    def conversion(self) -> str:
        return conversion_rate(self.won_count, self.total)


@dataclass
class MonthBucket:
    """Timeline month: creations counted by created_at, wins by closed_at (or created_at)."""

    created: int = 0
    won_count: int = 0
    won_amount_sum: float = 0.0


@dataclass
class RollupRow:
    name: str
    total: int
    won_count: int
    lost_count: int
    won_revenue: float
    conversion: str


@dataclass
class TimelineRow:
    month: str
    created: int
    won_count: int
    won_revenue: float


@dataclass
class SummaryStats:
    total: int = 0
    won: int = 0
    lost: int = 0
    open: int = 0
    won_revenue: float = 0.0

    @property
    def average_deal_size(self) -> float:
        return self.won_revenue / self.won if self.won else 0.0


@dataclass
class DatasetAggregates:
    """Everything the profile builder needs, computed in one scan."""

    summary: SummaryStats
    rollups: dict[str, list[RollupRow]] = field(default_factory=dict)
    timeline: list[TimelineRow] = field(default_factory=list)


def _sorted_rollup(buckets: dict[str, AggregationBucket]) -> list[RollupRow]:
    """Rows by won revenue descending, ties by key ascending."""
    rows = [
        RollupRow(
            name=name,
            total=b.total,
            won_count=b.won_count,
            lost_count=b.lost_count,
            won_revenue=round(b.won_amount_sum, 2),
            conversion=b.conversion,
        )
        for name, b in buckets.items()
    ]
    rows.sort(key=lambda r: r.name)
    rows.sort(key=lambda r: r.won_revenue, reverse=True)
    return rows


def aggregate(rows: Iterable[Opportunity]) -> Optional[DatasetAggregates]:
    """
    Compute global KPIs, per-dimension rollups and the monthly timeline.
    Returns None for an empty dataset so callers can short-circuit.
    """
    summary = SummaryStats()
    buckets: dict[str, dict[str, AggregationBucket]] = {dim: {} for dim in ROLLUP_DIMENSIONS}
    months: dict[tuple[int, int], MonthBucket] = {}

    for opp in rows:
        summary.total += 1
        if opp.is_won:
            summary.won += 1
            summary.won_revenue += opp.amount
        elif opp.is_lost:
            summary.lost += 1
        else:
            summary.open += 1

        for dim, project in ROLLUP_DIMENSIONS.items():
            key = project(opp)
            if key not in buckets[dim]:
                buckets[dim][key] = AggregationBucket()
            buckets[dim][key].add(opp)

        created = month_key(opp.created_at)
        months.setdefault(created, MonthBucket()).created += 1
        if opp.is_won:
            closed = month_key(opp.closed_at or opp.created_at)
            month = months.setdefault(closed, MonthBucket())
            month.won_count += 1
            month.won_amount_sum += opp.amount

    if summary.total == 0:
        return None

    timeline = [
        TimelineRow(
            month=month_label(key),
            created=m.created,
            won_count=m.won_count,
            won_revenue=round(m.won_amount_sum, 2),
        )
        for key, m in sorted(months.items())
    ]
    return DatasetAggregates(
        summary=summary,
        rollups={dim: _sorted_rollup(b) for dim, b in buckets.items()},
        timeline=timeline,
    )


class AggregationEngine:
    """Loads an owner's full dataset from the store and aggregates it."""

    def __init__(self, store: RowStore, page_size: int = 1000):
        self.store = store
        self.page_size = page_size

    def load(self, owner_id: str) -> list[Opportunity]:
        return fetch_all(self.store, owner_id, self.page_size)

    def analyze(self, owner_id: str) -> Optional[DatasetAggregates]:
        return aggregate(self.load(owner_id))
