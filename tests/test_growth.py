"""Tests for the shared CAGR helpers."""

import pytest

from multibagger.screener.growth import (
    YearValue,
    compound_growth_rate,
    fiscal_year,
    series_growth_rate,
)


class TestCompoundGrowthRate:
    def test_three_year_positive_growth(self):
        assert compound_growth_rate(100, 2021, 172.8, 2024) == pytest.approx(20.0, abs=1e-6)

    def test_decline_is_negative(self):
        assert compound_growth_rate(200, 2020, 100, 2023) == pytest.approx(-20.63, abs=0.01)

    def test_span_under_two_years_is_none(self):
        assert compound_growth_rate(100, 2023, 150, 2024) is None
        assert compound_growth_rate(100, 2024, 150, 2024) is None

    def test_missing_inputs_are_none(self):
        assert compound_growth_rate(None, 2021, 100, 2024) is None
        assert compound_growth_rate(100, None, 100, 2024) is None

    def test_mixed_signs_and_zero_are_none(self):
        assert compound_growth_rate(-50, 2021, 100, 2024) is None
        assert compound_growth_rate(0, 2021, 100, 2024) is None

    def test_narrowing_loss_gives_improvement_rate(self):
        rate = compound_growth_rate(-200, 2021, -100, 2024)
        assert rate == pytest.approx((2 ** (1 / 3) - 1) * 100)

    def test_widening_loss_is_none(self):
        assert compound_growth_rate(-100, 2021, -200, 2024) is None


class TestSeriesGrowthRate:
    def test_uses_point_three_years_back(self):
        points = [
            YearValue(2024, 172.8),
            YearValue(2023, 150),
            YearValue(2022, 120),
            YearValue(2021, 100),
            YearValue(2020, 10),
        ]
        assert series_growth_rate(points) == pytest.approx(20.0, abs=1e-6)

    def test_accepts_one_year_gap(self):
        points = [YearValue(2024, 200), YearValue(2020, 100)]
        assert series_growth_rate(points) == pytest.approx((2 ** 0.25 - 1) * 100)

    def test_too_few_points(self):
        assert series_growth_rate([YearValue(2024, 1)]) is None
        assert series_growth_rate([]) is None

    def test_no_point_in_window(self):
        assert series_growth_rate([YearValue(2024, 200), YearValue(2023, 100)]) is None


def test_fiscal_year_parsing():
    assert fiscal_year("2023-12-31") == 2023
    assert fiscal_year(None) is None
    assert fiscal_year("n/a") is None
