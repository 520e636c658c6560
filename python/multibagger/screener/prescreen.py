"""Price-only contrarian pre-screen used to narrow bulk runs."""

from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from loguru import logger

from .constants import PRESCREEN_MIN_SCORE
from .providers.yahoo import YahooPriceClient
from .schemas import PreScreenResult
from .scoring import momentum_points, price_range_points


class PreScreener:
    """Scores the price range and momentum factors from price history alone."""

    def __init__(self, prices: YahooPriceClient) -> None:
        self._prices = prices

    async def _score_one(self, ticker: str) -> Optional[PreScreenResult]:
        try:
            snapshot = await self._prices.price_snapshot(ticker)
        except Exception as exc:
            logger.warning(
                "Pre-screen price fetch failed for {ticker}: {error}",
                ticker=ticker,
                error=exc,
            )
            return None
        price = snapshot.get("price")
        high_52w = snapshot.get("high_52w")
        low_52w = snapshot.get("low_52w")
        if price is None or high_52w is None or low_52w is None:
            return None
        price_6m = snapshot.get("price_6_months_ago")
        return PreScreenResult(
            ticker=ticker.upper(),
            price=price,
            high_52w=high_52w,
            low_52w=low_52w,
            price_6_months_ago=price_6m,
            price_range_score=price_range_points(price, high_52w, low_52w).score,
            momentum_score=momentum_points(price, price_6m).score,
        )

    async def prescreen(
        self,
        tickers: Iterable[str],
        min_score: float = PRESCREEN_MIN_SCORE,
        max_candidates: Optional[int] = None,
    ) -> list[PreScreenResult]:
        """Return candidates scoring at least ``min_score``, best first."""
        tickers_list = list(tickers)
        if not tickers_list:
            return []
        scored = await asyncio.gather(*(self._score_one(t) for t in tickers_list))
        candidates = [
            result for result in scored if result is not None and result.score >= min_score
        ]
        candidates.sort(key=lambda result: result.score, reverse=True)
        logger.info(
            "Pre-screen kept {kept}/{total} tickers (min score {min_score})",
            kept=len(candidates),
            total=len(tickers_list),
            min_score=min_score,
        )
        if max_candidates is not None:
            candidates = candidates[:max_candidates]
        return candidates
