"""Raw spreadsheet row representation before normalization."""

from typing import Optional

from pydantic import BaseModel, Field


class RawRow(BaseModel):
    """
    One record of an uploaded spreadsheet, keyed by the file's own headers.
    Values are kept as text; nothing is interpreted at this stage.
    """

    data: dict[str, Optional[str]] = Field(default_factory=dict)
    line_number: int = Field(default=0, description="1-based line in the source file (0 if unknown)")

    def is_empty(self) -> bool:
        """True if every cell is missing or blank."""
        return not any((v or "").strip() for v in self.data.values())
