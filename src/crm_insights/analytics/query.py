"""Filter + group-by query tool over one owner's opportunities.

Results are ranked and capped so a language model never receives an
unbounded table.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, Optional

from pydantic import BaseModel, Field, field_validator

from crm_insights.models.opportunity import Opportunity, OpportunityStatus
from crm_insights.store.base import RowStore, fetch_all

from .aggregation import AggregationBucket, month_label

MAX_QUERY_GROUPS = 50

# Question words that make a query about sales, which are dated by closing date
SALES_KEYWORDS = ("venda", "receita", "faturamento", "sale", "sold", "revenue")


class Dimension(str, Enum):
    SELLER = "seller"
    LEAD_SOURCE = "lead_source"
    FUNNEL = "funnel"
    STAGE = "stage"
    STATUS = "status"
    REGION = "region"
    CITY = "city"
    PRODUCT = "product"
    CUSTOMER = "customer"
    LOSS_REASON = "loss_reason"
    MONTH = "month"
    YEAR = "year"


_FIELD_BY_DIMENSION = {
    Dimension.SELLER: "seller",
    Dimension.LEAD_SOURCE: "lead_source",
    Dimension.FUNNEL: "funnel",
    Dimension.STAGE: "stage",
    Dimension.REGION: "region_code",
    Dimension.CITY: "city",
    Dimension.PRODUCT: "product",
    Dimension.CUSTOMER: "customer_name",
    Dimension.LOSS_REASON: "loss_reason",
}

# Filter name -> opportunity attribute matched by case-insensitive substring
_SUBSTRING_FILTERS = {
    "seller": "seller",
    "lead_source": "lead_source",
    "funnel": "funnel",
    "region": "region_code",
    "product": "product",
}


class QueryFilters(BaseModel):
    """Sparse predicates; unset filters match everything."""

    seller: Optional[str] = Field(default=None, description="Seller name (substring)")
    lead_source: Optional[str] = Field(default=None, description="Lead source (substring)")
    funnel: Optional[str] = Field(default=None, description="Funnel (substring)")
    region: Optional[str] = Field(default=None, description="Two-letter region code (substring)")
    product: Optional[str] = Field(default=None, description="Product name (substring)")
    status: Optional[OpportunityStatus] = Field(default=None, description="Won, Lost or Open")
    year: Optional[int] = Field(default=None, ge=1900, le=2999, description="Four-digit year")
    month: Optional[int] = Field(default=None, ge=1, le=12, description="Month number 1-12")

    @field_validator("status", mode="before")
    @classmethod
    def _status_case(cls, value):
        if isinstance(value, str):
            for status in OpportunityStatus:
                if value.strip().lower() == status.value.lower():
                    return status
        return value

    @field_validator("seller", "lead_source", "funnel", "region", "product", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class QueryRequest(BaseModel):
    filters: QueryFilters = Field(default_factory=QueryFilters)
    group_by: list[Dimension] = Field(default_factory=list)


class QueryRow(BaseModel):
    group: str
    count: int
    revenue: float = Field(..., description="Sum of amounts of won rows in the group")
    pipeline_amount: float = Field(..., description="Sum of amounts of every row in the group")
    won_count: int
    lost_count: int
    lost_revenue: float
    conversion: str


class QueryResult(BaseModel):
    filters_applied: dict = Field(default_factory=dict)
    group_by: list[str] = Field(default_factory=list)
    date_field: str = Field(..., description="closed_at or created_at")
    matched: int = 0
    total_groups: int = 0
    truncated: bool = False
    rows: list[QueryRow] = Field(default_factory=list)


def uses_closing_date(filters: QueryFilters, question: Optional[str] = None) -> bool:
    """Sales questions (status Won, or sales words in the question) are dated by closing date."""
    if filters.status is OpportunityStatus.WON:
        return True
    text = (question or "").lower()
    return any(k in text for k in SALES_KEYWORDS)


def _resolved_date(opp: Opportunity, by_closing: bool) -> Optional[datetime]:
    return opp.closed_at if by_closing else opp.created_at


def _matches(
    opp: Opportunity,
    filters: QueryFilters,
    by_closing: bool,
    default_year: int,
) -> bool:
    for name, attr in _SUBSTRING_FILTERS.items():
        needle = getattr(filters, name)
        if needle and needle.strip().lower() not in getattr(opp, attr).lower():
            return False
    if filters.status is not None and opp.status is not filters.status:
        return False
    if filters.month is not None or filters.year is not None:
        when = _resolved_date(opp, by_closing)
        if when is None:
            return False
        year = filters.year if filters.year is not None else default_year
        if when.year != year:
            return False
        if filters.month is not None and when.month != filters.month:
            return False
    return True


def _project(opp: Opportunity, dim: Dimension, by_closing: bool) -> str:
    if dim is Dimension.MONTH:
        when = _resolved_date(opp, by_closing)
        return month_label((when.year, when.month)) if when else "N/A"
    if dim is Dimension.YEAR:
        when = _resolved_date(opp, by_closing)
        return f"{when.year:04d}" if when else "N/A"
    if dim is Dimension.STATUS:
        return opp.status.value
    return getattr(opp, _FIELD_BY_DIMENSION[dim]) or "N/A"


def run_query(
    rows: Iterable[Opportunity],
    request: QueryRequest,
    *,
    question: Optional[str] = None,
    max_groups: int = MAX_QUERY_GROUPS,
    default_year: Optional[int] = None,
) -> QueryResult:
    """
    Filter, group by the requested dimensions (in order) and rank.
    Ranking: won revenue, then lost revenue, then volume, all descending; group name breaks ties.
    """
    filters = request.filters
    max_groups = max(1, min(max_groups, MAX_QUERY_GROUPS))
    by_closing = uses_closing_date(filters, question)
    if default_year is None:
        default_year = datetime.now(timezone.utc).year

    groups: dict[str, AggregationBucket] = {}
    matched = 0
    for opp in rows:
        if not _matches(opp, filters, by_closing, default_year):
            continue
        matched += 1
        if request.group_by:
            key = " | ".join(_project(opp, dim, by_closing) for dim in request.group_by)
        else:
            key = "Total"
        if key not in groups:
            groups[key] = AggregationBucket()
        groups[key].add(opp)

    ranked = sorted(
        groups.items(),
        key=lambda kv: (-kv[1].won_amount_sum, -kv[1].lost_amount_sum, -kv[1].total, kv[0]),
    )
    applied = filters.model_dump(mode="json", exclude_none=True)
    if filters.month is not None and filters.year is None:
        applied["year"] = default_year
    return QueryResult(
        filters_applied=applied,
        group_by=[d.value for d in request.group_by],
        date_field="closed_at" if by_closing else "created_at",
        matched=matched,
        total_groups=len(groups),
        truncated=len(groups) > max_groups,
        rows=[
            QueryRow(
                group=key,
                count=b.total,
                revenue=round(b.won_amount_sum, 2),
                pipeline_amount=round(b.amount_sum, 2),
                won_count=b.won_count,
                lost_count=b.lost_count,
                lost_revenue=round(b.lost_amount_sum, 2),
                conversion=b.conversion,
            )
            for key, b in ranked[:max_groups]
        ],
    )


class QueryDispatcher:
    """Executes query requests against one owner's stored dataset."""

    def __init__(
        self,
        store: RowStore,
        *,
        page_size: int = 1000,
        max_groups: int = MAX_QUERY_GROUPS,
        default_year: Optional[int] = None,
    ):
        self.store = store
        self.page_size = page_size
        self.max_groups = max_groups
        self.default_year = default_year

    def dispatch(self, owner_id: str, request: QueryRequest, question: Optional[str] = None) -> QueryResult:
        rows = fetch_all(self.store, owner_id, self.page_size)
        return run_query(
            rows,
            request,
            question=question,
            max_groups=self.max_groups,
            default_year=self.default_year,
        )
