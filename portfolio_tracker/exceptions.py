"""
Custom exception hierarchy for the portfolio tracker.

Exception Hierarchy:
    PortfolioTrackerError (base)
    ├── DataError
    │   ├── DataFetchError
    │   └── DataValidationError
    ├── TickerError
    │   └── TickerNotFoundError
    ├── PortfolioError
    │   ├── HoldingNotFoundError
    │   ├── DuplicateHoldingError
    │   ├── TransactionNotFoundError
    │   └── TransactionValidationError
    └── ConfigurationError

The position calculator never raises; these errors come from model
construction, the holdings list, and the market-data collaborators.
"""

from typing import Any, Optional, Dict


class PortfolioTrackerError(Exception):
    """
    Base exception for all portfolio tracker errors.

    Attributes:
        message: Human-readable error description
        details: Additional context (symbol, field, etc.)
        cause: Original exception if this wraps another error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with details."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} [{detail_str}]"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {self.cause})"
        return msg


# =============================================================================
# Data-Related Exceptions
# =============================================================================

class DataError(PortfolioTrackerError):
    """Base exception for all market-data errors."""
    pass


class DataFetchError(DataError):
    """
    Raised when a quote, history or portfolio payload cannot be fetched.

    Examples:
        - API request timeout
        - Non-2xx response from /api/stock/...
    """

    def __init__(
        self,
        message: str,
        source: Optional[str] = None,
        symbol: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if source:
            details["source"] = source
        if symbol:
            details["symbol"] = symbol
        super().__init__(message, details=details, **kwargs)


class DataValidationError(DataError):
    """
    Raised when an API payload fails validation checks.

    Examples:
        - Missing currentPrice in a quote
        - Non-numeric price in a history point
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        expected: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        if expected:
            details["expected"] = expected
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Ticker-Related Exceptions
# =============================================================================

class TickerError(PortfolioTrackerError):
    """Base exception for ticker symbol errors."""
    pass


class TickerNotFoundError(TickerError):
    """Raised when a quote lookup finds no instrument for the symbol."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if symbol:
            details["symbol"] = symbol
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Portfolio Exceptions
# =============================================================================

class PortfolioError(PortfolioTrackerError):
    """Base exception for holdings-list errors."""
    pass


class HoldingNotFoundError(PortfolioError):
    """Raised when a holding is not found in its bucket."""
    pass


class DuplicateHoldingError(PortfolioError):
    """Raised when a symbol is added twice to the same bucket."""
    pass


class TransactionNotFoundError(PortfolioError):
    """Raised when a transaction id is not present on a holding."""
    pass


class TransactionValidationError(PortfolioError):
    """
    Raised when a transaction has non-positive shares or a negative price.

    Examples:
        - shares == 0
        - price == -1.0
        - type not in {buy, sell}
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        super().__init__(message, details=details, **kwargs)


# =============================================================================
# Configuration Exceptions
# =============================================================================

class ConfigurationError(PortfolioTrackerError):
    """Raised when an environment setting has an unusable value."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        expected: Optional[str] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        if expected:
            details["expected"] = expected
        super().__init__(message, details=details, **kwargs)


def is_recoverable(error: Exception) -> bool:
    """
    Determine if a collaborator error should fall back to an empty result.

    Args:
        error: The exception to check

    Returns:
        True for data and ticker errors, which the UI reports and moves past
    """
    return isinstance(error, (DataError, TickerError))
