"""Custom exception classes for the differential analysis engine."""
from typing import Optional


class DifferentialAnalysisError(Exception):
    """Base exception for all differential analysis errors."""
    pass


class ConfigurationError(DifferentialAnalysisError):
    """Raised when there's a configuration error."""
    pass


class ValidationError(DifferentialAnalysisError):
    """Raised when data validation fails."""
    pass


class InvalidInputError(ValidationError):
    """Raised when caller-supplied market data violates its invariants.

    Never retried: the caller has to fix the input.
    """
    pass


class DataProviderError(DifferentialAnalysisError):
    """Base exception for rate oracle and signal provider errors."""
    pass


class PartialDataError(DataProviderError):
    """Raised when upstream data needed for the analysis is incomplete."""
    pass


class RateUnavailableError(PartialDataError):
    """Raised when exchange rates cannot be obtained or a required rate is missing."""
    pass


class SignalUnavailableError(PartialDataError):
    """Raised when the market signal is unavailable and degradation is not allowed."""
    pass


class AdapterTimeoutError(DataProviderError):
    """Raised when an adapter call exceeds the analysis deadline."""

    def __init__(self, adapter: str, timeout: float, message: Optional[str] = None):
        self.adapter = adapter
        self.timeout = timeout
        super().__init__(message or f"{adapter} did not respond within {timeout}s")


class MarginComputationError(DifferentialAnalysisError):
    """Per-asset failure; collected in the analysis result instead of aborting it."""

    def __init__(self, asset: str, reason: str):
        self.asset = asset
        self.reason = reason
        super().__init__(f"{asset}: {reason}")
