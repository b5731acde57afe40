"""Ingestion orchestration: parse -> normalize -> fingerprint -> dedupe -> persist -> reload."""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, Field

from crm_insights.errors import InputError, PersistenceError
from crm_insights.fingerprint import compute_fingerprint, dedupe_batch
from crm_insights.models.opportunity import Opportunity
from crm_insights.normalization import RowNormalizer
from crm_insights.store.base import RowStore, fetch_all

from .reader import decode_bytes, read_rows

logger = logging.getLogger(__name__)


class IngestionResult(BaseModel):
    """Outcome of one upload."""

    run_id: int = 0
    rows_read: int = Field(0, description="Non-empty data rows parsed from the file")
    rejected_count: int = Field(0, description="Rows failing the validity check")
    duplicates_dropped: int = Field(0, description="Rows collapsed into a later row with the same fingerprint")
    accepted_count: int = Field(0, description="Rows sent to the store")
    batches: int = 0
    stored_total: int = Field(0, description="Records stored for the owner after reload")
    opportunities: list[Opportunity] = Field(default_factory=list)


class IngestionPipeline:
    """
    Runs one uploaded file through normalization and into the store.
    Sequential; batches are persisted in file order. A failing batch aborts the
    request, earlier batches stay committed. Stored amounts are never negative:
    negative rows are rejected, or stored as 0 when `drop_invalid` is off.
    """

    def __init__(
        self,
        store: RowStore,
        normalizer: Optional[RowNormalizer] = None,
        *,
        batch_size: int = 1000,
        page_size: int = 1000,
        delimiter: Optional[str] = None,
        drop_invalid: bool = True,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        self.store = store
        self.normalizer = normalizer or RowNormalizer()
        self.batch_size = batch_size
        self.page_size = page_size
        self.delimiter = delimiter
        self.drop_invalid = drop_invalid
        self._clock = clock

    def prepare(self, owner_id: str, data: bytes) -> tuple[list[Opportunity], IngestionResult]:
        """Parse and normalize without persisting. Returns (records to upsert, partial result)."""
        if not data or not data.strip():
            raise InputError("File is empty")
        rows = read_rows(decode_bytes(data), delimiter=self.delimiter)

        now = self._clock()
        records: list[Opportunity] = []
        rejected = 0
        for raw in rows:
            normalized = self.normalizer.normalize(raw, now)
            if normalized.amount < 0:
                if self.drop_invalid:
                    rejected += 1
                    logger.debug("Rejected line %d: negative amount %s", raw.line_number, normalized.amount)
                    continue
                logger.debug("Line %d: negative amount %s stored as 0", raw.line_number, normalized.amount)
                normalized = normalized.model_copy(update={"amount": 0.0})
            opp = Opportunity.from_normalized(
                normalized,
                owner_id=owner_id,
                fingerprint=compute_fingerprint(owner_id, normalized),
            )
            records.append(opp)
        if rejected:
            logger.warning("Rejected %d row(s) failing the validity check", rejected)

        unique, dropped = dedupe_batch(records)
        result = IngestionResult(
            rows_read=len(rows),
            rejected_count=rejected,
            duplicates_dropped=dropped,
            accepted_count=len(unique),
        )
        return unique, result

    def ingest(self, owner_id: str, data: bytes) -> IngestionResult:
        """Ingest one file for one owner and return stats plus the reloaded dataset."""
        records, result = self.prepare(owner_id, data)

        run = self.store.start_run(owner_id)
        result.run_id = run.id
        committed = 0
        committed_rows = 0
        status = "failed"
        try:
            for i in range(0, len(records), self.batch_size):
                batch = records[i : i + self.batch_size]
                try:
                    self.store.upsert_many(batch)
                except Exception as e:
                    raise PersistenceError(
                        f"Batch {committed + 1} failed: {e}", committed_batches=committed
                    ) from e
                committed += 1
                committed_rows += len(batch)
                logger.info(
                    "Owner %s: committed batch %d (%d rows)", owner_id, committed, len(batch)
                )

            result.batches = committed
            try:
                result.opportunities = fetch_all(self.store, owner_id, self.page_size)
            except Exception as e:
                raise PersistenceError(f"Reload failed: {e}", committed_batches=committed) from e
            result.stored_total = len(result.opportunities)
            status = "completed"
        finally:
            # Every started run ends completed or failed
            self.store.finish_run(
                run.id,
                rows_read=result.rows_read,
                rows_accepted=committed_rows,
                duplicates_dropped=result.duplicates_dropped,
                status=status,
            )
        return result
