"""Upstream data provider clients."""

from .alphavantage import AlphaVantageClient
from .base import ProviderClient
from .edgar import EdgarClient
from .fmp import FmpClient
from .gemini import GeminiClient
from .yahoo import YahooPriceClient

__all__ = [
    "AlphaVantageClient",
    "EdgarClient",
    "FmpClient",
    "GeminiClient",
    "ProviderClient",
    "YahooPriceClient",
]
