"""Compound annual growth rate helpers shared by the provider clients."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from .constants import GROWTH_YEARS

MIN_SPAN_YEARS: int = 2


@dataclass(frozen=True)
class YearValue:
    """One annual data point of a financial series."""

    year: int
    value: float


def compound_growth_rate(
    start_value: Optional[float],
    start_year: Optional[int],
    end_value: Optional[float],
    end_year: Optional[int],
) -> Optional[float]:
    """Return the CAGR between two annual values as a percentage.

    Both values positive gives the usual ``(end/start)^(1/years) - 1``. Both
    negative gives an improvement rate from the reciprocal ratio, defined only
    when the loss narrowed. Mixed signs, zeros, missing inputs or a span under
    two years give ``None``.
    """
    if None in (start_value, start_year, end_value, end_year):
        return None
    span = end_year - start_year
    if span < MIN_SPAN_YEARS:
        return None
    if start_value > 0 and end_value > 0:
        ratio = end_value / start_value
    elif start_value < 0 and end_value < 0:
        ratio = end_value / start_value
        if ratio > 1:
            return None
        ratio = 1 / ratio
    else:
        return None
    return (ratio ** (1 / span) - 1) * 100


def series_growth_rate(
    points: Iterable[YearValue], years: int = GROWTH_YEARS
) -> Optional[float]:
    """CAGR from the newest point back to the point ``years`` earlier.

    The older endpoint is the newest point at least ``years`` before the most
    recent one, accepting up to one extra year of slack for gaps in filings.
    """
    ordered = sorted(points, key=lambda point: point.year, reverse=True)
    if len(ordered) < 2:
        return None
    recent = ordered[0]
    older = next(
        (
            point
            for point in ordered
            if recent.year - years - 1 <= point.year <= recent.year - years
        ),
        None,
    )
    if older is None:
        return None
    return compound_growth_rate(older.value, older.year, recent.value, recent.year)


def fiscal_year(date_text: Optional[str]) -> Optional[int]:
    """Extract the year from an ISO ``YYYY-MM-DD`` date string."""
    if not date_text or len(date_text) < 4:
        return None
    try:
        return int(date_text[:4])
    except ValueError:
        return None
