"""Delimited-text parsing and the upload ingestion pipeline."""

from crm_insights.ingestion.pipeline import IngestionPipeline, IngestionResult
from crm_insights.ingestion.reader import decode_bytes, detect_delimiter, read_rows

__all__ = ["IngestionPipeline", "IngestionResult", "decode_bytes", "detect_delimiter", "read_rows"]
