"""Pure value normalizers. None of these raise on malformed input."""

import math
import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from crm_insights.models.opportunity import OpportunityStatus

_CURRENCY_SYMBOLS = ("R$", "US$", "$", "€", "£")
_WHITESPACE = re.compile(r"\s+")

# First YYYY-MM-DD in the string, optionally followed by a time
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})(?:[T ](\d{2}):(\d{2})(?::(\d{2}))?)?")

_DATE_SENTINELS = ("00/00/0000",)


def parse_currency(value: Optional[str]) -> float:
    """
    Parse a Latin-American formatted amount: "R$ 1.234,56" -> 1234.56.
    '.' is a thousands separator, ',' the decimal separator. Garbage -> 0.
    """
    if not value:
        return 0.0
    clean = str(value)
    for symbol in _CURRENCY_SYMBOLS:
        clean = clean.replace(symbol, "")
    clean = _WHITESPACE.sub("", clean)
    clean = clean.replace(".", "").replace(",", ".")
    try:
        number = float(clean)
    except ValueError:
        return 0.0
    return number if math.isfinite(number) else 0.0


def _safe_datetime(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> Optional[datetime]:
    try:
        return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)
    except ValueError:
        return None


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse DD/MM/YYYY (or an ISO YYYY-MM-DD fragment) into a UTC datetime.
    Returns None for sentinels ("", "00/00/0000", anything with '#') and impossible dates.
    """
    if not value:
        return None
    text = str(value).strip()
    if not text or "#" in text or text in _DATE_SENTINELS:
        return None

    iso = _ISO_DATE.search(text)
    if iso:
        parts = [int(p) if p else 0 for p in iso.groups()]
        return _safe_datetime(*parts)

    token = text.split()[0]
    parts = token.split("/")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        return None
    day, month, year = (int(p) for p in parts)
    if len(parts[2]) <= 2:
        year += 2000
    return _safe_datetime(year, month, day)


def normalize_status(
    value: Optional[str],
    won_keywords: Iterable[str] = ("ganha", "conquistado", "fechado", "vendido"),
    lost_keywords: Iterable[str] = ("perdida", "perdido", "lost", "desqualificado"),
) -> OpportunityStatus:
    """Collapse free-text status via substring keywords. Won is checked before Lost."""
    if not value:
        return OpportunityStatus.OPEN
    lower = value.lower()
    if any(k in lower for k in won_keywords):
        return OpportunityStatus.WON
    if any(k in lower for k in lost_keywords):
        return OpportunityStatus.LOST
    return OpportunityStatus.OPEN


def normalize_region(value: Optional[str]) -> str:
    """First two characters upper-cased; "NA" when absent."""
    if not value or not value.strip():
        return "NA"
    return value.strip()[:2].upper()
