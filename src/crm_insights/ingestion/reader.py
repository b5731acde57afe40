"""Parse an uploaded delimited-text file into header-keyed raw rows."""

import csv
from io import StringIO
from typing import Optional

from crm_insights.errors import InputError
from crm_insights.models.raw import RawRow

SUPPORTED_DELIMITERS = (",", ";")
_ENCODINGS = ("utf-8-sig", "cp1252")


def decode_bytes(data: bytes) -> str:
    """Decode upload bytes: UTF-8 (BOM tolerated), then cp1252 for legacy exports."""
    for encoding in _ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise InputError("File is not valid UTF-8 or Windows-1252 text")


def detect_delimiter(header_line: str) -> str:
    """Pick ';' or ',' by occurrence in the header line."""
    semicolons = header_line.count(";")
    commas = header_line.count(",")
    if not semicolons and not commas:
        raise InputError(
            "Unrecognized delimiter: header row contains neither ',' nor ';'"
        )
    return ";" if semicolons > commas else ","


def read_rows(text: str, delimiter: Optional[str] = None) -> list[RawRow]:
    """
    Parse CSV text with a header row. Fully empty rows are skipped.
    Raises InputError when there is no header or no data row.
    """
    lines = text.splitlines()
    header_line = next((line for line in lines if line.strip()), None)
    if header_line is None:
        raise InputError("File is empty")

    if delimiter is None:
        delimiter = detect_delimiter(header_line)
    elif delimiter not in SUPPORTED_DELIMITERS:
        raise InputError(f"Unsupported delimiter {delimiter!r}. Use one of {list(SUPPORTED_DELIMITERS)}")

    reader = csv.DictReader(StringIO(text), delimiter=delimiter)
    headers = [h for h in (reader.fieldnames or []) if h and h.strip()]
    if not headers:
        raise InputError("Header row has no column names")

    rows: list[RawRow] = []
    for record in reader:
        # Extra cells beyond the header land under the None key; drop them
        data = {k: v for k, v in record.items() if isinstance(k, str) and k.strip()}
        raw = RawRow(data=data, line_number=reader.line_num)
        if raw.is_empty():
            continue
        rows.append(raw)

    if not rows:
        raise InputError("File has a header but no data rows")
    return rows
