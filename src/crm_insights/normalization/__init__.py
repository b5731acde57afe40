"""Field resolution and value normalization for raw spreadsheet rows."""

from .fields import FieldResolver
from .row import RowNormalizer
from .values import normalize_region, normalize_status, parse_currency, parse_date

__all__ = [
    "FieldResolver",
    "RowNormalizer",
    "normalize_region",
    "normalize_status",
    "parse_currency",
    "parse_date",
]
