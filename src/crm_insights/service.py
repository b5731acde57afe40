"""Request-scoped façade composing ingestion, analytics and the LLM layer."""

import logging
from datetime import datetime, timezone
from typing import Optional

from crm_insights.analytics import AggregationEngine, AnalyticalProfile, QueryDispatcher, QueryRequest, QueryResult, build_profile
from crm_insights.auth import IdentityProvider, bearer_credential
from crm_insights.config import Settings
from crm_insights.errors import AuthenticationError, NoDataError
from crm_insights.ingestion import IngestionPipeline, IngestionResult
from crm_insights.llm import ChatModel, ChatOutcome, OpenAIChatModel, build_report_prompt, generate_text, render_report, run_chat
from crm_insights.normalization import RowNormalizer
from crm_insights.store import RowStore

logger = logging.getLogger(__name__)


class InsightsService:
    """One instance per process; every method call is one request for one owner."""

    def __init__(
        self,
        store: RowStore,
        settings: Optional[Settings] = None,
        *,
        chat_model: Optional[ChatModel] = None,
        identity: Optional[IdentityProvider] = None,
    ):
        self.store = store
        self.settings = settings or Settings.from_env()
        self._chat_model = chat_model
        self.identity = identity
        self.normalizer = RowNormalizer(
            self.settings.load_aliases(), infer_closed_at=self.settings.infer_closed_at
        )

    def authenticate(self, authorization: Optional[str]) -> str:
        """Owner id for an Authorization header. Raises AuthenticationError."""
        if self.identity is None:
            raise AuthenticationError("Access denied: no identity provider configured")
        return self.identity.authenticate(bearer_credential(authorization))

    @property
    def default_query_year(self) -> int:
        return self.settings.default_query_year or datetime.now(timezone.utc).year

    def ingest(self, owner_id: str, data: bytes) -> IngestionResult:
        pipeline = IngestionPipeline(
            self.store,
            self.normalizer,
            batch_size=self.settings.batch_size,
            page_size=self.settings.page_size,
            delimiter=self.settings.delimiter,
            drop_invalid=self.settings.drop_invalid,
        )
        result = pipeline.ingest(owner_id, data)
        logger.info(
            "Owner %s: %d rows read, %d accepted, %d duplicates dropped, %d stored",
            owner_id,
            result.rows_read,
            result.accepted_count,
            result.duplicates_dropped,
            result.stored_total,
        )
        return result

    def profile(self, owner_id: str) -> AnalyticalProfile:
        """Analytical profile, or NoDataError when the owner has nothing stored."""
        aggregates = AggregationEngine(self.store, self.settings.page_size).analyze(owner_id)
        if aggregates is None:
            raise NoDataError("No data to analyze. Upload a file first.")
        return build_profile(aggregates)

    def query(self, owner_id: str, request: QueryRequest, question: Optional[str] = None) -> QueryResult:
        return self._dispatcher().dispatch(owner_id, request, question=question)

    def analyze(self, owner_id: str, provider: Optional[str] = None) -> str:
        """Executive report for the owner; provider "template" renders without a model."""
        profile = self.profile(owner_id)
        provider = (provider or self.settings.llm_provider).lower()
        if provider == "template":
            return render_report(profile)
        return generate_text(provider, build_report_prompt(profile), self.settings)

    def chat(self, owner_id: str, message: str, history: Optional[list[dict]] = None) -> ChatOutcome:
        if self._chat_model is None:
            self._chat_model = OpenAIChatModel(self.settings)
        return run_chat(
            self._chat_model,
            self._dispatcher(),
            owner_id,
            message,
            history,
            default_year=self.default_query_year,
        )

    def _dispatcher(self) -> QueryDispatcher:
        return QueryDispatcher(
            self.store,
            page_size=self.settings.page_size,
            max_groups=self.settings.max_query_groups,
            default_year=self.default_query_year,
        )
