"""Tests for record merging and provider result tagging."""

from datetime import timedelta

from multibagger.screener.schemas import CanonicalFinancialRecord, ProviderResult

from conftest import T0


class TestFillOnlyMerge:
    def test_populated_fields_are_never_overwritten(self):
        first = CanonicalFinancialRecord(ticker="ABC").fill(
            {"price": 10.0, "ebitda_growth": 5.0}
        )
        merged = first.fill({"price": 99.0, "ebitda_growth": 50.0, "asset_growth": 3.0})
        assert merged.price == 10.0
        assert merged.ebitda_growth == 5.0
        assert merged.asset_growth == 3.0

    def test_none_values_and_unknown_keys_are_ignored(self):
        record = CanonicalFinancialRecord(ticker="ABC", roa=4.0)
        merged = record.fill({"roa": None, "bogus": 1, "ticker": "XYZ"})
        assert merged == record
        assert merged.ticker == "ABC"

    def test_fill_returns_new_record(self):
        record = CanonicalFinancialRecord(ticker="ABC")
        merged = record.fill({"sector": "Tech"})
        assert record.sector is None
        assert merged.sector == "Tech"

    def test_false_is_a_value(self):
        merged = CanonicalFinancialRecord(ticker="ABC").fill({"pays_dividend": False})
        assert merged.pays_dividend is False
        assert merged.fill({"pays_dividend": True}).pays_dividend is False


class TestFreshness:
    def test_boundary(self):
        record = CanonicalFinancialRecord(ticker="ABC", fetched_at=T0)
        window = timedelta(hours=24)
        assert record.is_fresh(T0 + timedelta(hours=23, minutes=59), window)
        assert not record.is_fresh(T0 + timedelta(hours=24, seconds=1), window)

    def test_unstamped_record_is_stale(self):
        assert not CanonicalFinancialRecord(ticker="ABC").is_fresh(T0, timedelta(hours=24))


class TestProviderResult:
    def test_success_without_values_is_empty(self):
        result = ProviderResult.success("gemini", {"ebitda_growth": None})
        assert result.status == "empty"
        assert not result.ok

    def test_success_drops_null_values(self):
        result = ProviderResult.success("yahoo", {"high_52w": 10.0, "low_52w": None})
        assert result.ok
        assert result.values == {"high_52w": 10.0}

    def test_failure_carries_message(self):
        result = ProviderResult.failure("edgar", ValueError("boom"))
        assert result.status == "error"
        assert result.error == "boom"
