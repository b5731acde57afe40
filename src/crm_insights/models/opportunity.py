"""Canonical opportunity record produced by row normalization."""

import math
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class OpportunityStatus(str, Enum):
    """Outcome of an opportunity. Free-text statuses collapse to one of these."""

    WON = "Won"
    LOST = "Lost"
    OPEN = "Open"


class NormalizedRow(BaseModel):
    """Opportunity fields derived from one raw row, before owner and fingerprint are attached."""

    seller: str = "N/A"
    funnel: str = "General"
    stage: str = "General"
    status: OpportunityStatus = OpportunityStatus.OPEN
    amount: float = 0.0
    created_at: datetime
    created_at_fallback: bool = False
    closed_at: Optional[datetime] = None
    lead_source: str = "N/A"
    customer_name: str = "Anonymous"
    region_code: str = "NA"
    city: str = "N/A"
    product: str = "General"
    loss_reason: str = "Not informed"

    @field_validator("amount", mode="before")
    @classmethod
    def _finite_amount(cls, value):
        try:
            number = float(value)
        except (TypeError, ValueError):
            return 0.0
        return number if math.isfinite(number) else 0.0


class Opportunity(NormalizedRow):
    """Canonical sales opportunity as persisted in the row store."""

    owner_id: str = Field(..., description="Owning tenant/user; set at ingestion")
    fingerprint: str = Field(..., description="Upsert key, unique per owner")

    @classmethod
    def from_normalized(cls, row: NormalizedRow, *, owner_id: str, fingerprint: str) -> "Opportunity":
        return cls(owner_id=owner_id, fingerprint=fingerprint, **row.model_dump())

    @property
    def is_won(self) -> bool:
        return self.status is OpportunityStatus.WON

    @property
    def is_lost(self) -> bool:
        return self.status is OpportunityStatus.LOST
