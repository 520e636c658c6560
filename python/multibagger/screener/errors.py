"""Exception types for the screener pipeline."""

from __future__ import annotations


class ScreenerError(Exception):
    """Base class for screener failures."""


class ProviderUnavailableError(ScreenerError):
    """An upstream provider could not supply data for this call.

    Always recovered inside the provider client; the pipeline moves on to the
    next provider.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class BudgetExhaustedError(ProviderUnavailableError):
    """The provider's daily call budget is spent."""

    def __init__(self, provider: str, budget: int) -> None:
        super().__init__(provider, f"daily budget of {budget} calls exhausted")
        self.budget = budget


class IdentityNotFoundError(ScreenerError):
    """No filer identifier is known for the ticker."""

    def __init__(self, ticker: str) -> None:
        super().__init__(f"No CIK found for ticker {ticker}")
        self.ticker = ticker


class PrimaryProviderError(ScreenerError):
    """The mandatory fundamentals provider failed for a ticker."""

    def __init__(self, ticker: str, message: str, not_found: bool = False) -> None:
        super().__init__(f"Primary provider failed for {ticker}: {message}")
        self.ticker = ticker
        self.not_found = not_found


class ScreeningError(ScreenerError):
    """A ticker could not be screened."""

    def __init__(self, ticker: str, reason: str, not_found: bool = False) -> None:
        super().__init__(f"Could not screen ticker {ticker}: {reason}")
        self.ticker = ticker
        self.reason = reason
        self.not_found = not_found
