"""Row identity: fingerprint computation and in-batch deduplication.

Fingerprint policy (the store's upsert key together with owner_id):
sha256 over (owner_id, creation date, customer_name, amount, product).
Status, stage and loss reason are outside the key, so a re-upload where a
deal moved from Open to Won updates the stored record instead of adding one.
A creation date that came from the ingestion-time fallback hashes as "" so
re-ingesting the same dirty file stays idempotent.
"""

import hashlib
import json
import logging
from typing import Iterable

from crm_insights.models.opportunity import NormalizedRow, Opportunity

logger = logging.getLogger(__name__)

FINGERPRINT_FIELDS = ("created_at", "customer_name", "amount", "product")


def fingerprint_key(owner_id: str, row: NormalizedRow) -> tuple:
    """Ordered tuple of the values that define identity."""
    created = "" if row.created_at_fallback else row.created_at.date().isoformat()
    return (
        owner_id,
        created,
        row.customer_name,
        f"{row.amount:.2f}",
        row.product,
    )


def compute_fingerprint(owner_id: str, row: NormalizedRow) -> str:
    """Deterministic 64-char hex digest of the identity fields."""
    payload = json.dumps(fingerprint_key(owner_id, row), ensure_ascii=False)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def dedupe_batch(records: Iterable[Opportunity]) -> tuple[list[Opportunity], int]:
    """
    Collapse records sharing a fingerprint; the later one in file order wins.
    Returns (survivors in first-seen order, number of dropped records).
    """
    by_fingerprint: dict[str, Opportunity] = {}
    seen = 0
    for record in records:
        seen += 1
        by_fingerprint[record.fingerprint] = record
    dropped = seen - len(by_fingerprint)
    if dropped:
        logger.warning(
            "Dropped %d row(s) sharing a fingerprint with a later row in the same file", dropped
        )
    return list(by_fingerprint.values()), dropped
