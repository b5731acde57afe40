"""Request-level error taxonomy. Per-cell parse problems never raise."""

from typing import Optional


class CRMInsightsError(Exception):
    """Base class; every request-level failure maps to one structured description."""

    kind = "error"

    def to_dict(self) -> dict:
        return {"error": self.kind, "message": str(self)}


class InputError(CRMInsightsError):
    """Malformed upload: empty file, no data rows, unrecognized delimiter."""

    kind = "input_error"


class PersistenceError(CRMInsightsError):
    """A store batch failed. Batches committed before the failure stay committed."""

    kind = "persistence_error"

    def __init__(self, message: str, committed_batches: int = 0):
        super().__init__(message)
        self.committed_batches = committed_batches

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["committed_batches"] = self.committed_batches
        return data


class AuthenticationError(CRMInsightsError):
    """Missing, malformed or rejected credential."""

    kind = "authentication_error"


class ProviderError(CRMInsightsError):
    """Text generation or function-calling provider failed."""

    kind = "provider_error"

    def __init__(self, provider: str, message: str, cause: Optional[BaseException] = None):
        super().__init__(f"Provider {provider} failed: {message}")
        self.provider = provider
        self.cause = cause

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["provider"] = self.provider
        return data


class NoDataError(CRMInsightsError):
    """The owner has no stored opportunities to analyze."""

    kind = "no_data"
