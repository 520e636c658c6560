"""Tests for the nine-factor scoring engine."""

import pytest

from multibagger.screener.constants import MAX_SCORE
from multibagger.screener.schemas import CanonicalFinancialRecord
from multibagger.screener.scoring import (
    classify,
    momentum_points,
    price_range_points,
    score_dividend,
    score_fcf_yield,
    score_investment_pattern,
    score_record,
    score_size,
)


def _record(**values) -> CanonicalFinancialRecord:
    return CanonicalFinancialRecord(ticker="TEST", **values)


class TestScenarios:
    def test_perfect_record_scores_full_marks(self, strong_buy_record):
        result = score_record(strong_buy_record)
        assert result.fcf_yield.score == 25
        assert result.size.score == 15
        assert result.book_to_market.score == 15
        assert result.investment_pattern.score == 15
        assert result.ebitda_margin.score == 10
        assert result.roa.score == 10
        assert result.price_range.score == 10
        assert result.momentum.score == 5
        assert result.dividend.score == 5
        assert result.total == 110
        assert result.max_total == MAX_SCORE
        assert result.percentage == pytest.approx(100.0)
        assert result.classification == "STRONG BUY"

    def test_sparse_record_uses_price_fields_only(self):
        record = _record(
            price=25.0, market_cap=5_000_000_000.0, high_52w=45.0, low_52w=20.0
        )
        result = score_record(record)
        assert result.price_range.score == 10
        assert result.momentum.score == 2.5
        assert result.momentum.value == "Est."
        assert result.fcf_yield.score == 0
        assert result.total == 12.5
        assert result.classification == "AVOID"

    def test_scoring_is_idempotent(self, strong_buy_record):
        assert score_record(strong_buy_record) == score_record(strong_buy_record)

    @pytest.mark.parametrize(
        "record",
        [
            _record(),
            _record(price=1.0, market_cap=1.0, free_cash_flow=-5.0, roa=-3.0),
            _record(price=100.0, high_52w=100.0, low_52w=100.0, price_6_months_ago=0.0),
        ],
    )
    def test_total_is_sum_of_factors_and_bounded(self, record):
        result = score_record(record)
        assert result.total == sum(factor.score for factor in result.factors().values())
        assert 0 <= result.total <= MAX_SCORE


class TestFactors:
    def test_missing_fcf_scores_zero(self):
        factor = score_fcf_yield(_record(market_cap=1e9))
        assert factor.score == 0
        assert factor.max_score == 25
        assert factor.value == "N/A"

    @pytest.mark.parametrize(
        "fcf, expected",
        [(13, 25), (12, 20), (9, 20), (8, 15), (6, 15), (5, 8), (0.1, 8), (0, 0), (-3, 0)],
    )
    def test_fcf_yield_bands(self, fcf, expected):
        record = _record(market_cap=100.0, free_cash_flow=fcf)
        assert score_fcf_yield(record).score == expected

    def test_zero_fcf_is_not_called_negative(self):
        factor = score_fcf_yield(_record(market_cap=100.0, free_cash_flow=0.0))
        assert factor.score == 0
        assert factor.rationale.startswith("Zero FCF yield")
        assert "burning cash" not in factor.rationale

    @pytest.mark.parametrize(
        "market_cap_m, expected",
        [
            (100, 15), (350, 12), (499, 12), (500, 8),
            (999, 8), (1000, 4), (1999, 4), (2000, 0),
        ],
    )
    def test_size_bands(self, market_cap_m, expected):
        assert score_size(_record(market_cap=market_cap_m * 1_000_000)).score == expected

    def test_size_value_formatting(self):
        assert score_size(_record(market_cap=280_000_000)).value == "$280M"
        assert score_size(_record(market_cap=2_500_000_000)).value == "$2.50B"

    @pytest.mark.parametrize(
        "ebitda_growth, asset_growth, expected",
        [(25, 12, 15), (5, 12, 7), (5, -3, 15), (-2, -5, 0), (0, 0, 0)],
    )
    def test_investment_pattern(self, ebitda_growth, asset_growth, expected):
        record = _record(ebitda_growth=ebitda_growth, asset_growth=asset_growth)
        assert score_investment_pattern(record).score == expected

    def test_investment_pattern_needs_both_growth_rates(self):
        assert score_investment_pattern(_record(ebitda_growth=25)).score == 0

    @pytest.mark.parametrize(
        "price, expected",
        [(20, 10), (24, 10), (28, 8), (32, 5), (38, 2), (40, 0)],
    )
    def test_price_range_bands(self, price, expected):
        assert price_range_points(price, 45.0, 20.0).score == expected

    def test_flat_range_scores_zero(self):
        assert price_range_points(10.0, 10.0, 10.0).score == 0

    @pytest.mark.parametrize(
        "price, expected",
        [(80, 5), (88, 4), (90, 4), (96, 3), (100, 1), (114, 1), (120, 0)],
    )
    def test_momentum_bands(self, price, expected):
        assert momentum_points(price, 100.0).score == expected

    def test_momentum_neutral_without_reference(self):
        assert momentum_points(10.0, None).score == 2.5
        assert momentum_points(10.0, -1.0).score == 2.5

    def test_dividend_from_flag_or_yield(self):
        assert score_dividend(_record(pays_dividend=True)).score == 5
        assert score_dividend(_record(dividend_yield=1.5)).value == "1.50%"
        assert score_dividend(_record(pays_dividend=False, dividend_yield=0.0)).score == 0


@pytest.mark.parametrize(
    "percentage, label",
    [
        (70, "STRONG BUY"),
        (69.9, "MODERATE BUY"),
        (55, "MODERATE BUY"),
        (40, "WEAK BUY"),
        (39.9, "AVOID"),
    ],
)
def test_classification_thresholds(percentage, label):
    assert classify(percentage) == label
