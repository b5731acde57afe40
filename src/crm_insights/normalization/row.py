"""Compose field resolution and value normalizers into one canonical row."""

from datetime import datetime
from typing import Mapping, Optional, Union

from crm_insights.models.aliases import DEFAULT_ALIASES, AliasTable
from crm_insights.models.opportunity import NormalizedRow, OpportunityStatus
from crm_insights.models.raw import RawRow

from .fields import FieldResolver
from .values import normalize_region, normalize_status, parse_currency, parse_date


class RowNormalizer:
    """
    Turns one raw spreadsheet record into a fully populated NormalizedRow.
    Total and side-effect free: the ingestion timestamp used as the creation
    date fallback is passed in, so equal input always gives equal output.
    """

    def __init__(self, aliases: AliasTable = DEFAULT_ALIASES, *, infer_closed_at: bool = False):
        self.aliases = aliases
        self.infer_closed_at = infer_closed_at

    def normalize(self, raw: Union[RawRow, Mapping[str, Optional[str]]], now: datetime) -> NormalizedRow:
        """Normalize one row. `now` is the fallback creation date for unparsable input."""
        data = raw.data if isinstance(raw, RawRow) else raw
        find = FieldResolver(data, self.aliases).resolve

        status = normalize_status(
            find("status"),
            won_keywords=self.aliases.won_keywords,
            lost_keywords=self.aliases.lost_keywords,
        )

        created_at = parse_date(find("created_at"))
        created_at_fallback = created_at is None
        if created_at is None:
            created_at = now

        closed_at = parse_date(find("closed_at"))
        if closed_at is None and self.infer_closed_at and status is OpportunityStatus.WON:
            closed_at = created_at

        return NormalizedRow(
            seller=find("seller") or "N/A",
            funnel=find("funnel") or "General",
            stage=find("stage") or "General",
            status=status,
            amount=parse_currency(find("amount")),
            created_at=created_at,
            created_at_fallback=created_at_fallback,
            closed_at=closed_at,
            lead_source=find("lead_source") or "N/A",
            customer_name=find("customer_name") or "Anonymous",
            region_code=normalize_region(find("region_code")),
            city=find("city") or "N/A",
            product=find("product") or "General",
            loss_reason=find("loss_reason") or "Not informed",
        )
