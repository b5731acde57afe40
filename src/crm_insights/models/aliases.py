"""Alias table mapping canonical fields to known spreadsheet headers."""

from pathlib import Path

try:
    import yaml
except ModuleNotFoundError as e:
    raise ModuleNotFoundError(
        "PyYAML is required for alias table loading. Run: pip install crm-insights"
    ) from e
from pydantic import BaseModel, ConfigDict, Field

CANONICAL_FIELDS = (
    "seller",
    "funnel",
    "stage",
    "status",
    "amount",
    "created_at",
    "closed_at",
    "lead_source",
    "customer_name",
    "region_code",
    "city",
    "product",
    "loss_reason",
)


class AliasTable(BaseModel):
    """
    Ordered header aliases per canonical field, plus status keywords.
    Alias order is a tie-break: the first alias present in a row wins.
    """

    model_config = ConfigDict(frozen=True)

    seller: tuple[str, ...] = ("Responsável", "Vendedor", "Owner", "Agente", "Rep", "Seller")
    funnel: tuple[str, ...] = ("Funil", "Pipeline", "Funnel")
    stage: tuple[str, ...] = ("Etapa", "Fase", "Stage", "Step")
    # "Estado" is also the first region alias; exports use it for either meaning
    status: tuple[str, ...] = ("Situação", "Status", "Estado", "Situation")
    amount: tuple[str, ...] = ("Valor", "Vlr", "Receita", "Amount", "Preço", "Valor Total")
    created_at: tuple[str, ...] = (
        "Dt.Cad",
        "Data Criação",
        "Created At",
        "Data Entrada",
        "Data de Cadastro",
    )
    closed_at: tuple[str, ...] = (
        "Dt.Conq./Perda",
        "Data Fechamento",
        "Closed At",
        "Data Venda",
        "Data Conclusão",
    )
    lead_source: tuple[str, ...] = ("Origem", "Source", "Canal", "Origem do Lead", "Fonte")
    customer_name: tuple[str, ...] = ("Cliente", "Nome", "Empresa", "Lead", "Nome do Cliente")
    region_code: tuple[str, ...] = ("Estado", "UF", "U.F.", "State", "Região")
    city: tuple[str, ...] = ("Cidade", "City", "Municipio", "Local")
    product: tuple[str, ...] = (
        "Produto",
        "Produtos",
        "Serviço",
        "Item",
        "Mercadoria",
        "Product",
    )
    loss_reason: tuple[str, ...] = ("Motivo da Perda", "Motivo Perda", "Motivo", "Loss Reason")

    won_keywords: tuple[str, ...] = Field(
        default=("ganha", "conquistado", "fechado", "vendido"),
        description="Lower-case substrings classifying a status as Won (checked first)",
    )
    lost_keywords: tuple[str, ...] = Field(
        default=("perdida", "perdido", "lost", "desqualificado"),
        description="Lower-case substrings classifying a status as Lost",
    )

    def aliases_for(self, field: str) -> tuple[str, ...]:
        """Return the ordered aliases for a canonical field."""
        if field not in CANONICAL_FIELDS:
            raise ValueError(f"Unknown canonical field: {field}. Known: {list(CANONICAL_FIELDS)}")
        return getattr(self, field)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "AliasTable":
        """
        Load alias overrides from YAML. Supports an `aliases:` section or a flat mapping.
        Fields present in the file replace the default list; others keep defaults.
        """
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
        section = data.get("aliases", data)
        overrides: dict = {}
        for key, value in section.items():
            if key not in CANONICAL_FIELDS:
                continue
            if isinstance(value, str):
                value = [value]
            overrides[key] = tuple(str(v) for v in value or [])
        keywords = data.get("status_keywords", {})
        if keywords.get("won"):
            overrides["won_keywords"] = tuple(str(k).lower() for k in keywords["won"])
        if keywords.get("lost"):
            overrides["lost_keywords"] = tuple(str(k).lower() for k in keywords["lost"])
        return cls.model_validate(overrides)


DEFAULT_ALIASES = AliasTable()
