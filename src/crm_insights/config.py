"""Runtime settings loaded from CRM_INSIGHTS_* environment variables."""

import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from crm_insights.models.aliases import DEFAULT_ALIASES, AliasTable

ENV_PREFIX = "CRM_INSIGHTS_"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.environ.get(ENV_PREFIX + name)
    return value if value not in (None, "") else default


class Settings(BaseModel):
    """Settings shared by the pipeline, analytics and LLM layers."""

    db_path: Path = Path("crm_insights.db")
    llm_provider: str = "openai"
    llm_model: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    ollama_url: str = "http://localhost:11434/api/generate"

    batch_size: int = Field(default=1000, gt=0, description="Rows per store upsert")
    page_size: int = Field(default=1000, gt=0, description="Rows per store range read")
    delimiter: Optional[str] = Field(default=None, description="Fixed CSV delimiter; auto-detect when unset")
    aliases_path: Optional[Path] = None
    infer_closed_at: bool = False
    drop_invalid: bool = True

    default_query_year: Optional[int] = Field(
        default=None,
        description="Year applied when a query names a month but no year (current year when unset)",
    )
    max_query_groups: int = Field(default=50, gt=0)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the environment; unset variables keep defaults."""
        data: dict = {}
        mapping = {
            "DB_PATH": "db_path",
            "LLM_PROVIDER": "llm_provider",
            "LLM_MODEL": "llm_model",
            "OLLAMA_URL": "ollama_url",
            "BATCH_SIZE": "batch_size",
            "PAGE_SIZE": "page_size",
            "DELIMITER": "delimiter",
            "ALIASES": "aliases_path",
            "DEFAULT_QUERY_YEAR": "default_query_year",
            "MAX_QUERY_GROUPS": "max_query_groups",
        }
        for env_name, field_name in mapping.items():
            value = _env(env_name)
            if value is not None:
                data[field_name] = value
        infer = _env("INFER_CLOSED_AT")
        if infer is not None:
            data["infer_closed_at"] = infer.lower() in ("1", "true", "yes")
        data["openai_api_key"] = os.environ.get("OPENAI_API_KEY") or None
        data["gemini_api_key"] = os.environ.get("GEMINI_API_KEY") or None
        return cls.model_validate(data)

    def load_aliases(self) -> AliasTable:
        """Alias table from `aliases_path` if configured, else the defaults."""
        if self.aliases_path:
            return AliasTable.from_yaml(self.aliases_path)
        return DEFAULT_ALIASES
