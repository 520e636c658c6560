"""Local file storage for cached records, filings data and screening history."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, Iterator, Optional

from loguru import logger

from .constants import CACHE_DIR_NAME, EDGAR_DIR_NAME, HISTORY_DIR_NAME
from .schemas import (
    CanonicalFinancialRecord,
    CikMapping,
    FiscalYearFinancials,
    ScreeningRecord,
)


def _ticker_key(ticker: str) -> str:
    # Class-share tickers such as BRK/B must stay a single path segment.
    return ticker.strip().upper().replace("/", "-")


def _read_json(path: Path) -> Optional[dict | list]:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        logger.warning("Failed to read JSON file {path}: {error}", path=path, error=exc)
        return None


class RecordStore:
    """File-backed key-value store with three namespaces.

    ``cache/`` holds one JSON record per ticker (upsert), ``edgar/`` holds the
    permanent CIK mappings and per-fiscal-year filings rows, and ``history/``
    holds an append-only JSONL file of screening results per ticker.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self._cache_dir = self.root / CACHE_DIR_NAME
        self._cik_dir = self.root / EDGAR_DIR_NAME / "cik"
        self._financials_dir = self.root / EDGAR_DIR_NAME / "financials"
        self._history_dir = self.root / HISTORY_DIR_NAME
        for directory in (
            self._cache_dir,
            self._cik_dir,
            self._financials_dir,
            self._history_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    # Record cache namespace

    def _cache_path(self, ticker: str) -> Path:
        return self._cache_dir / f"{_ticker_key(ticker)}.json"

    def read_record(self, ticker: str) -> Optional[CanonicalFinancialRecord]:
        path = self._cache_path(ticker)
        if not path.exists():
            return None
        data = _read_json(path)
        if not data:
            return None
        try:
            return CanonicalFinancialRecord.model_validate(data)
        except Exception as exc:
            logger.warning(
                "Discarding unreadable cache entry {path}: {error}",
                path=path,
                error=exc,
            )
            return None

    def write_record(self, record: CanonicalFinancialRecord) -> None:
        path = self._cache_path(record.ticker)
        path.write_text(record.model_dump_json(indent=2), encoding="utf-8")

    def delete_record(self, ticker: str) -> bool:
        path = self._cache_path(ticker)
        if not path.exists():
            return False
        path.unlink()
        return True

    def iter_records(self) -> Iterator[CanonicalFinancialRecord]:
        for path in sorted(self._cache_dir.glob("*.json")):
            record = self.read_record(path.stem)
            if record is not None:
                yield record

    def cached_tickers(self) -> list[str]:
        return [path.stem for path in sorted(self._cache_dir.glob("*.json"))]

    # Filings namespace (never expires)

    def read_cik_mapping(self, ticker: str) -> Optional[CikMapping]:
        path = self._cik_dir / f"{_ticker_key(ticker)}.json"
        if not path.exists():
            return None
        data = _read_json(path)
        if not data:
            return None
        return CikMapping.model_validate(data)

    def write_cik_mapping(self, mapping: CikMapping) -> None:
        path = self._cik_dir / f"{_ticker_key(mapping.ticker)}.json"
        path.write_text(mapping.model_dump_json(indent=2), encoding="utf-8")

    def read_fiscal_years(self, ticker: str) -> list[FiscalYearFinancials]:
        """Return cached filings rows, newest fiscal year first."""
        path = self._financials_dir / f"{_ticker_key(ticker)}.json"
        if not path.exists():
            return []
        data = _read_json(path)
        if not isinstance(data, list):
            return []
        rows = [FiscalYearFinancials.model_validate(item) for item in data]
        rows.sort(key=lambda row: row.fiscal_year, reverse=True)
        return rows

    def write_fiscal_years(
        self, ticker: str, rows: Iterable[FiscalYearFinancials]
    ) -> None:
        """Upsert rows keyed by fiscal year."""
        merged = {row.fiscal_year: row for row in self.read_fiscal_years(ticker)}
        for row in rows:
            merged[row.fiscal_year] = row
        ordered = sorted(merged.values(), key=lambda row: row.fiscal_year, reverse=True)
        path = self._financials_dir / f"{_ticker_key(ticker)}.json"
        payload = [row.model_dump(mode="json") for row in ordered]
        path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    # Screening history namespace (append-only)

    def append_screening(self, record: ScreeningRecord) -> None:
        path = self._history_dir / f"{_ticker_key(record.ticker)}.jsonl"
        with path.open("a", encoding="utf-8") as jsonl_file:
            jsonl_file.write(record.model_dump_json())
            jsonl_file.write("\n")

    def _load_history_file(self, path: Path) -> list[ScreeningRecord]:
        records: list[ScreeningRecord] = []
        with path.open("r", encoding="utf-8") as jsonl_file:
            for line in jsonl_file:
                if not line.strip():
                    continue
                try:
                    records.append(ScreeningRecord.model_validate(json.loads(line)))
                except Exception as exc:
                    logger.warning(
                        "Failed to parse history line in {path}: {error}",
                        path=path,
                        error=exc,
                    )
        return records

    def load_history(self, ticker: str) -> list[ScreeningRecord]:
        path = self._history_dir / f"{_ticker_key(ticker)}.jsonl"
        if not path.exists():
            return []
        return self._load_history_file(path)

    def iter_history(self) -> Iterator[ScreeningRecord]:
        for path in sorted(self._history_dir.glob("*.jsonl")):
            yield from self._load_history_file(path)
