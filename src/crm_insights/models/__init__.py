"""Data models for canonical opportunities, raw rows and alias tables."""

from crm_insights.models.aliases import AliasTable
from crm_insights.models.opportunity import NormalizedRow, Opportunity, OpportunityStatus
from crm_insights.models.raw import RawRow

__all__ = ["AliasTable", "NormalizedRow", "Opportunity", "OpportunityStatus", "RawRow"]
