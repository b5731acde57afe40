"""Resolve canonical fields against an unknown set of spreadsheet headers."""

from typing import Mapping, Optional

from crm_insights.models.aliases import AliasTable


def _key(text: str) -> str:
    """Case- and surrounding-whitespace-insensitive header key."""
    return text.strip().lower()


class FieldResolver:
    """
    Looks up canonical fields in one raw row using the ordered alias table.
    Headers are indexed once per row; the first alias with a non-blank cell wins.
    """

    def __init__(self, row: Mapping[str, Optional[str]], aliases: AliasTable):
        self.aliases = aliases
        self._headers: dict[str, str] = {}
        for header in row:
            if not isinstance(header, str):
                continue
            # First occurrence wins when two headers differ only by case/whitespace
            self._headers.setdefault(_key(header), header)
        self._row = row

    def resolve(self, field: str) -> Optional[str]:
        """Trimmed value for the field, or None if no alias matched a non-blank cell."""
        for alias in self.aliases.aliases_for(field):
            header = self._headers.get(_key(alias))
            if header is None:
                continue
            value = self._row.get(header)
            if value is None:
                continue
            value = str(value).strip()
            if value:
                return value
        return None
