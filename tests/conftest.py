"""Pytest fixtures for crm-insights tests."""

import csv
import itertools
import tempfile
from datetime import datetime, timezone
from io import StringIO
from pathlib import Path

import pytest

from crm_insights.store import SQLiteRowStore

FIXED_NOW = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)

_fingerprints = itertools.count(1)


def build_csv(rows: list[dict], delimiter: str = ";") -> bytes:
    """Build CSV bytes from row dicts; header is the union of keys in first-seen order."""
    if not rows:
        return b""
    fieldnames: list[str] = []
    for row in rows:
        for key in row:
            if key not in fieldnames:
                fieldnames.append(key)
    out = StringIO()
    writer = csv.DictWriter(out, fieldnames=fieldnames, delimiter=delimiter, restval="")
    writer.writeheader()
    writer.writerows(rows)
    return out.getvalue().encode("utf-8")


@pytest.fixture
def sample_crm_row() -> dict[str, str]:
    """One row as exported by a Brazilian CRM."""
    return {
        "Responsável": "Ana Souza",
        "Funil": "Vendas",
        "Etapa": "Proposta",
        "Situação": "Negócio Conquistado",
        "Valor": "R$ 1.234,56",
        "Dt.Cad": "15/03/2024",
        "Dt.Conq./Perda": "02/04/2024",
        "Origem": "Instagram",
        "Cliente": "Padaria Central",
        "Estado": "sp",
        "Cidade": "Campinas",
        "Produto": "Plano Anual",
        "Motivo da Perda": "",
    }


@pytest.fixture
def sample_rows(sample_crm_row: dict[str, str]) -> list[dict[str, str]]:
    """Three distinct rows: won, lost, open."""
    lost = dict(sample_crm_row)
    lost.update(
        {
            "Responsável": "Bruno Lima",
            "Situação": "Perdida",
            "Valor": "R$ 500,00",
            "Dt.Cad": "10/01/2024",
            "Dt.Conq./Perda": "20/01/2024",
            "Cliente": "Mercado Bom Preço",
            "Motivo da Perda": "Preço",
        }
    )
    opened = dict(sample_crm_row)
    opened.update(
        {
            "Situação": "Em negociação",
            "Valor": "R$ 2.000,00",
            "Dt.Cad": "05/05/2024",
            "Dt.Conq./Perda": "",
            "Cliente": "Academia Forte",
            "Estado": "RJ",
            "Cidade": "Niterói",
        }
    )
    return [sample_crm_row, lost, opened]


@pytest.fixture
def sample_csv_bytes(sample_rows: list[dict[str, str]]) -> bytes:
    """Semicolon-delimited CSV with header and three rows."""
    return build_csv(sample_rows)


@pytest.fixture
def temp_db() -> Path:
    """Temporary database path for isolated tests."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        path = Path(f.name)
    yield path
    path.unlink(missing_ok=True)


@pytest.fixture
def store(temp_db: Path) -> SQLiteRowStore:
    """SQLiteRowStore with temporary database."""
    return SQLiteRowStore(temp_db)


@pytest.fixture
def csv_bytes():
    """Factory fixture: build_csv(rows, delimiter=';')."""
    return build_csv


def make_opp(**kwargs):
    """Opportunity with sensible defaults; kwargs override fields. Fingerprints are unique unless given."""
    from crm_insights.models.opportunity import Opportunity

    defaults = {
        "owner_id": "owner-1",
        "fingerprint": f"fp-{next(_fingerprints)}",
        "created_at": datetime(2024, 3, 10, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    return Opportunity(**defaults)


@pytest.fixture
def opp_factory():
    """Factory fixture building Opportunity records."""
    return make_opp


@pytest.fixture
def fixed_now() -> datetime:
    """Ingestion timestamp used as the creation date fallback."""
    return FIXED_NOW
