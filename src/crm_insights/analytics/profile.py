"""Reshape aggregation output into the fixed analytical profile."""

from pydantic import BaseModel, Field

from .aggregation import DatasetAggregates, RollupRow

TOP_N = 5


class ProfileSummary(BaseModel):
    total_analyzed: int
    won: int
    lost: int
    open: int
    total_revenue: float = Field(..., description="Sum of won amounts")
    average_deal_size: float = Field(..., description="Won revenue / won count, 0 without wins")


class DimensionEntry(BaseModel):
    name: str
    opportunities: int
    won: int
    lost: int
    revenue: float
    conversion: str


class TimelineEntry(BaseModel):
    month: str = Field(..., description="MM/YYYY")
    opportunities_created: int
    sales_won: int
    revenue: float


class Geography(BaseModel):
    states: list[DimensionEntry] = Field(default_factory=list)
    cities: list[DimensionEntry] = Field(default_factory=list)


class AnalyticalProfile(BaseModel):
    """Report object consumed by the executive report prompt."""

    summary: ProfileSummary
    funnels: list[DimensionEntry] = Field(default_factory=list)
    sellers: list[DimensionEntry] = Field(default_factory=list)
    sources: list[DimensionEntry] = Field(default_factory=list)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    geography: Geography = Field(default_factory=Geography)
    products: list[DimensionEntry] = Field(default_factory=list)


def _entries(rows: list[RollupRow]) -> list[DimensionEntry]:
    return [
        DimensionEntry(
            name=r.name,
            opportunities=r.total,
            won=r.won_count,
            lost=r.lost_count,
            revenue=r.won_revenue,
            conversion=r.conversion,
        )
        for r in rows
    ]


def build_profile(aggregates: DatasetAggregates, top_n: int = TOP_N) -> AnalyticalProfile:
    """Sellers and sources pass through in full; geography and products keep the top N."""
    s = aggregates.summary
    rollups = aggregates.rollups
    return AnalyticalProfile(
        summary=ProfileSummary(
            total_analyzed=s.total,
            won=s.won,
            lost=s.lost,
            open=s.open,
            total_revenue=round(s.won_revenue, 2),
            average_deal_size=round(s.average_deal_size, 2),
        ),
        funnels=_entries(rollups.get("funnel", [])),
        sellers=_entries(rollups.get("seller", [])),
        sources=_entries(rollups.get("lead_source", [])),
        timeline=[
            TimelineEntry(
                month=t.month,
                opportunities_created=t.created,
                sales_won=t.won_count,
                revenue=t.won_revenue,
            )
            for t in aggregates.timeline
        ],
        geography=Geography(
            states=_entries(rollups.get("region", [])[:top_n]),
            cities=_entries(rollups.get("city", [])[:top_n]),
        ),
        products=_entries(rollups.get("product", [])[:top_n]),
    )
