"""Tests for Settings loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from crm_insights.config import Settings
from crm_insights.models.aliases import DEFAULT_ALIASES


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "CRM_INSIGHTS_DB_PATH",
        "CRM_INSIGHTS_LLM_PROVIDER",
        "CRM_INSIGHTS_BATCH_SIZE",
        "CRM_INSIGHTS_PAGE_SIZE",
        "CRM_INSIGHTS_DELIMITER",
        "CRM_INSIGHTS_ALIASES",
        "CRM_INSIGHTS_INFER_CLOSED_AT",
        "CRM_INSIGHTS_DEFAULT_QUERY_YEAR",
        "CRM_INSIGHTS_MAX_QUERY_GROUPS",
        "OPENAI_API_KEY",
        "GEMINI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    settings = Settings.from_env()
    assert settings.db_path == Path("crm_insights.db")
    assert settings.llm_provider == "openai"
    assert settings.batch_size == 1000
    assert settings.delimiter is None
    assert settings.openai_api_key is None
    assert settings.gemini_api_key is None
    assert settings.infer_closed_at is False
    assert settings.max_query_groups == 50


def test_reads_environment(monkeypatch) -> None:
    monkeypatch.setenv("CRM_INSIGHTS_DB_PATH", "/tmp/x.db")
    monkeypatch.setenv("CRM_INSIGHTS_LLM_PROVIDER", "ollama")
    monkeypatch.setenv("CRM_INSIGHTS_BATCH_SIZE", "250")
    monkeypatch.setenv("CRM_INSIGHTS_DELIMITER", ";")
    monkeypatch.setenv("CRM_INSIGHTS_INFER_CLOSED_AT", "true")
    monkeypatch.setenv("CRM_INSIGHTS_DEFAULT_QUERY_YEAR", "2024")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("GEMINI_API_KEY", "g-test")
    settings = Settings.from_env()
    assert settings.db_path == Path("/tmp/x.db")
    assert settings.llm_provider == "ollama"
    assert settings.batch_size == 250
    assert settings.delimiter == ";"
    assert settings.infer_closed_at is True
    assert settings.default_query_year == 2024
    assert settings.openai_api_key == "sk-test"
    assert settings.gemini_api_key == "g-test"


def test_empty_variable_keeps_default(monkeypatch) -> None:
    monkeypatch.setenv("CRM_INSIGHTS_BATCH_SIZE", "")
    assert Settings.from_env().batch_size == 1000


def test_invalid_batch_size(monkeypatch) -> None:
    monkeypatch.setenv("CRM_INSIGHTS_BATCH_SIZE", "0")
    with pytest.raises(ValidationError):
        Settings.from_env()


def test_load_aliases_default() -> None:
    assert Settings().load_aliases() is DEFAULT_ALIASES


def test_load_aliases_from_file(tmp_path) -> None:
    path = tmp_path / "aliases.yaml"
    path.write_text("aliases:\n  seller: [Consultor]\n", encoding="utf-8")
    aliases = Settings(aliases_path=path).load_aliases()
    assert aliases.seller == ("Consultor",)
    assert aliases.funnel == DEFAULT_ALIASES.funnel
