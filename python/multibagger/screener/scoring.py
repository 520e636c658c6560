"""Nine-factor multibagger scoring model.

Every factor is a pure function of a ``CanonicalFinancialRecord``. Missing
inputs score zero for that factor only; the momentum factor falls back to a
neutral 2.5 when the six-month reference price is unknown.
"""

from __future__ import annotations

from typing import Optional

from .constants import MAX_SCORE
from .schemas import CanonicalFinancialRecord, Classification, FactorScore, ScoringResult

FCF_YIELD_MAX = 25
SIZE_MAX = 15
BOOK_TO_MARKET_MAX = 15
INVESTMENT_PATTERN_MAX = 15
EBITDA_MARGIN_MAX = 10
ROA_MAX = 10
PRICE_RANGE_MAX = 10
MOMENTUM_MAX = 5
DIVIDEND_MAX = 5
MOMENTUM_NEUTRAL_SCORE = 2.5

CLASSIFICATION_BANDS: tuple[tuple[float, Classification], ...] = (
    (70.0, "STRONG BUY"),
    (55.0, "MODERATE BUY"),
    (40.0, "WEAK BUY"),
)

METHODOLOGY: list[dict[str, object]] = [
    {
        "factor": "fcf_yield",
        "max_score": FCF_YIELD_MAX,
        "formula": "free_cash_flow / market_cap",
        "bands": ">12% 25, >8% 20, >5% 15, >0% 8, else 0",
    },
    {
        "factor": "size",
        "max_score": SIZE_MAX,
        "formula": "market_cap in millions",
        "bands": "<350 15, <500 12, <1000 8, <2000 4, else 0",
    },
    {
        "factor": "book_to_market",
        "max_score": BOOK_TO_MARKET_MAX,
        "formula": "book_value / market_cap",
        "bands": ">1.0 15, >0.6 12, >0.4 8, >0 4, else 0",
    },
    {
        "factor": "investment_pattern",
        "max_score": INVESTMENT_PATTERN_MAX,
        "formula": "ebitda_growth vs asset_growth (3-year CAGR)",
        "bands": "EBITDA growth above asset growth and positive 15, "
        "both positive 7, EBITDA growth positive 10, else 0",
    },
    {
        "factor": "ebitda_margin",
        "max_score": EBITDA_MARGIN_MAX,
        "formula": "EBITDA margin %",
        "bands": ">20 10, >15 8, >10 6, >0 3, else 0",
    },
    {
        "factor": "roa",
        "max_score": ROA_MAX,
        "formula": "return on assets %",
        "bands": ">12 10, >8 8, >5 6, >0 3, else 0",
    },
    {
        "factor": "price_range",
        "max_score": PRICE_RANGE_MAX,
        "formula": "(price - low_52w) / (high_52w - low_52w) * 100",
        "bands": "<=20 10, <=35 8, <=50 5, <=75 2, else 0",
    },
    {
        "factor": "momentum",
        "max_score": MOMENTUM_MAX,
        "formula": "(price - price_6_months_ago) / price_6_months_ago * 100",
        "bands": "<-15 5, <-5 4, <0 3, <15 1, else 0; unknown 2.5",
    },
    {
        "factor": "dividend",
        "max_score": DIVIDEND_MAX,
        "formula": "pays_dividend or dividend_yield > 0",
        "bands": "yes 5, else 0",
    },
]


def _factor(score: float, max_score: int, value: str, rationale: str) -> FactorScore:
    return FactorScore(score=score, max_score=max_score, value=value, rationale=rationale)


def _has_market_cap(record: CanonicalFinancialRecord) -> bool:
    return record.market_cap is not None and record.market_cap > 0


def score_fcf_yield(record: CanonicalFinancialRecord) -> FactorScore:
    if record.free_cash_flow is None or not _has_market_cap(record):
        return _factor(0, FCF_YIELD_MAX, "N/A", "Free cash flow data not available")
    fcf_yield = record.free_cash_flow / record.market_cap * 100
    if fcf_yield > 12:
        score, rationale = 25, f"Exceptional FCF yield of {fcf_yield:.1f}% (>12%)"
    elif fcf_yield > 8:
        score, rationale = 20, f"Strong FCF yield of {fcf_yield:.1f}% (>8%)"
    elif fcf_yield > 5:
        score, rationale = 15, f"Good FCF yield of {fcf_yield:.1f}% (>5%)"
    elif fcf_yield > 0:
        score, rationale = 8, f"Positive FCF yield of {fcf_yield:.1f}%"
    elif fcf_yield == 0:
        score, rationale = 0, "Zero FCF yield, no free cash generated"
    else:
        score = 0
        rationale = f"Negative FCF yield of {fcf_yield:.1f}%, company is burning cash"
    return _factor(score, FCF_YIELD_MAX, f"{fcf_yield:.1f}%", rationale)


def _format_market_cap(market_cap_m: float) -> str:
    if market_cap_m < 1000:
        return f"${market_cap_m:.0f}M"
    return f"${market_cap_m / 1000:.2f}B"


def score_size(record: CanonicalFinancialRecord) -> FactorScore:
    if not _has_market_cap(record):
        return _factor(0, SIZE_MAX, "N/A", "Market cap not available")
    market_cap_m = record.market_cap / 1_000_000
    if market_cap_m < 350:
        score, rationale = 15, f"Micro-cap (${market_cap_m:.0f}M), optimal size"
    elif market_cap_m < 500:
        score, rationale = 12, f"Small micro-cap (${market_cap_m:.0f}M)"
    elif market_cap_m < 1000:
        score, rationale = 8, f"Small-cap (${market_cap_m:.0f}M)"
    elif market_cap_m < 2000:
        score, rationale = 4, f"Mid-small cap (${market_cap_m:.0f}M)"
    else:
        score = 0
        rationale = f"Large cap (${market_cap_m / 1000:.1f}B), limited upside from size"
    return _factor(score, SIZE_MAX, _format_market_cap(market_cap_m), rationale)


def score_book_to_market(record: CanonicalFinancialRecord) -> FactorScore:
    if record.book_value is None or not _has_market_cap(record):
        return _factor(0, BOOK_TO_MARKET_MAX, "N/A", "Book value data not available")
    btm = record.book_value / record.market_cap
    if btm > 1.0:
        score, rationale = 15, f"Trading below book value (B/M: {btm:.2f})"
    elif btm > 0.6:
        score, rationale = 12, f"Good value (B/M: {btm:.2f})"
    elif btm > 0.4:
        score, rationale = 8, f"Moderate value (B/M: {btm:.2f})"
    elif btm > 0:
        score, rationale = 4, f"Growth valuation (B/M: {btm:.2f})"
    else:
        score, rationale = 0, "Negative book value"
    return _factor(score, BOOK_TO_MARKET_MAX, f"{btm:.2f}", rationale)


def score_investment_pattern(record: CanonicalFinancialRecord) -> FactorScore:
    ebitda_growth, asset_growth = record.ebitda_growth, record.asset_growth
    if ebitda_growth is None or asset_growth is None:
        return _factor(
            0,
            INVESTMENT_PATTERN_MAX,
            "N/A",
            "Growth metrics not available, requires EBITDA and asset growth",
        )
    spread = ebitda_growth - asset_growth
    if ebitda_growth > asset_growth and ebitda_growth > 0:
        score = 15
        rationale = (
            f"EBITDA growth ({ebitda_growth:.1f}%) exceeds asset growth "
            f"({asset_growth:.1f}%)"
        )
    elif ebitda_growth > 0 and asset_growth > 0:
        score = 7
        rationale = (
            f"Asset growth ({asset_growth:.1f}%) exceeds EBITDA growth "
            f"({ebitda_growth:.1f}%)"
        )
    elif ebitda_growth > 0:
        score = 10
        rationale = f"Growing EBITDA ({ebitda_growth:.1f}%) with flat or shrinking assets"
    else:
        score = 0
        rationale = f"Declining EBITDA ({ebitda_growth:.1f}%)"
    sign = "+" if spread > 0 else ""
    return _factor(score, INVESTMENT_PATTERN_MAX, f"{sign}{spread:.1f}%", rationale)


def score_ebitda_margin(record: CanonicalFinancialRecord) -> FactorScore:
    margin = record.ebitda_margin
    if margin is None:
        return _factor(0, EBITDA_MARGIN_MAX, "N/A", "EBITDA margin data not available")
    if margin > 20:
        score = 10
        rationale = f"Excellent profitability, {margin:.1f}% EBITDA margin (>20%)"
    elif margin > 15:
        score, rationale = 8, f"Strong profitability, {margin:.1f}% EBITDA margin (>15%)"
    elif margin > 10:
        score, rationale = 6, f"Decent profitability, {margin:.1f}% EBITDA margin (>10%)"
    elif margin > 0:
        score, rationale = 3, f"Low profitability, {margin:.1f}% EBITDA margin"
    else:
        score, rationale = 0, f"Negative EBITDA margin ({margin:.1f}%)"
    return _factor(score, EBITDA_MARGIN_MAX, f"{margin:.1f}%", rationale)


def score_roa(record: CanonicalFinancialRecord) -> FactorScore:
    roa = record.roa
    if roa is None:
        return _factor(0, ROA_MAX, "N/A", "ROA data not available")
    if roa > 12:
        score, rationale = 10, f"Exceptional asset efficiency, {roa:.1f}% ROA (>12%)"
    elif roa > 8:
        score, rationale = 8, f"Strong asset efficiency, {roa:.1f}% ROA (>8%)"
    elif roa > 5:
        score, rationale = 6, f"Good asset efficiency, {roa:.1f}% ROA (>5%)"
    elif roa > 0:
        score, rationale = 3, f"Low asset efficiency, {roa:.1f}% ROA"
    else:
        score, rationale = 0, f"Negative ROA ({roa:.1f}%)"
    return _factor(score, ROA_MAX, f"{roa:.1f}%", rationale)


def price_range_points(
    price: Optional[float], high_52w: Optional[float], low_52w: Optional[float]
) -> FactorScore:
    """Contrarian score for the position inside the 52-week range."""
    if price is None or not high_52w or not low_52w or high_52w == low_52w:
        return _factor(0, PRICE_RANGE_MAX, "N/A", "52-week price range data not available")
    position = (price - low_52w) / (high_52w - low_52w) * 100
    if position <= 20:
        score, rationale = 10, f"Near 52-week lows ({position:.0f}% of range)"
    elif position <= 35:
        score, rationale = 8, f"Lower third of 52-week range ({position:.0f}%)"
    elif position <= 50:
        score, rationale = 5, f"Middle of 52-week range ({position:.0f}%)"
    elif position <= 75:
        score, rationale = 2, f"Upper half of 52-week range ({position:.0f}%)"
    else:
        score, rationale = 0, f"Near 52-week highs ({position:.0f}%)"
    return _factor(score, PRICE_RANGE_MAX, f"{position:.0f}%", rationale)


def momentum_points(
    price: Optional[float], price_6_months_ago: Optional[float]
) -> FactorScore:
    """Contrarian score for the six-month return."""
    if price_6_months_ago is None or price_6_months_ago <= 0:
        return _factor(
            MOMENTUM_NEUTRAL_SCORE,
            MOMENTUM_MAX,
            "Est.",
            "6-month price data not available, using neutral estimate",
        )
    if price is None:
        return _factor(0, MOMENTUM_MAX, "N/A", "Current price not available")
    momentum = (price - price_6_months_ago) / price_6_months_ago * 100
    if momentum < -15:
        score, rationale = 5, f"Beaten down, {momentum:.1f}% 6-month return"
    elif momentum < -5:
        score, rationale = 4, f"Underperforming, {momentum:.1f}% 6-month return"
    elif momentum < 0:
        score, rationale = 3, f"Mild weakness, {momentum:.1f}% 6-month return"
    elif momentum < 15:
        score, rationale = 1, f"Positive momentum ({momentum:.1f}%)"
    else:
        score = 0
        rationale = f"Strong positive momentum ({momentum:.1f}%), potentially overheated"
    return _factor(score, MOMENTUM_MAX, f"{momentum:.1f}%", rationale)


def score_price_range(record: CanonicalFinancialRecord) -> FactorScore:
    return price_range_points(record.price, record.high_52w, record.low_52w)


def score_momentum(record: CanonicalFinancialRecord) -> FactorScore:
    return momentum_points(record.price, record.price_6_months_ago)


def score_dividend(record: CanonicalFinancialRecord) -> FactorScore:
    dividend_yield = record.dividend_yield
    has_yield = dividend_yield is not None and dividend_yield > 0
    if record.pays_dividend or has_yield:
        if has_yield:
            return _factor(
                5,
                DIVIDEND_MAX,
                f"{dividend_yield:.2f}%",
                f"Pays dividend ({dividend_yield:.2f}% yield)",
            )
        return _factor(5, DIVIDEND_MAX, "Yes", "Pays dividend")
    return _factor(0, DIVIDEND_MAX, "No", "No dividend")


def classify(percentage: float) -> Classification:
    for threshold, label in CLASSIFICATION_BANDS:
        if percentage >= threshold:
            return label
    return "AVOID"


def score_record(record: CanonicalFinancialRecord) -> ScoringResult:
    factors = {
        "fcf_yield": score_fcf_yield(record),
        "size": score_size(record),
        "book_to_market": score_book_to_market(record),
        "investment_pattern": score_investment_pattern(record),
        "ebitda_margin": score_ebitda_margin(record),
        "roa": score_roa(record),
        "price_range": score_price_range(record),
        "momentum": score_momentum(record),
        "dividend": score_dividend(record),
    }
    total = sum(factor.score for factor in factors.values())
    percentage = total / MAX_SCORE * 100
    return ScoringResult(
        **factors,
        total=total,
        max_total=MAX_SCORE,
        percentage=percentage,
        classification=classify(percentage),
    )
