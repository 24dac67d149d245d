"""Custom exceptions for clearer error handling across the scanner."""


class RegimeScanError(Exception):
    """Base exception for all scanner-specific errors."""


class ConfigError(RegimeScanError, ValueError):
    """Raised when configuration is invalid or missing."""


class DataProviderError(RegimeScanError):
    """Raised when market data retrieval fails."""
