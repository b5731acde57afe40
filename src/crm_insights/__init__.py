"""CRM spreadsheet ingestion and sales analytics."""

__version__ = "0.1.0"
