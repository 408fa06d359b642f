from __future__ import annotations

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from .models import FundingInfo, StartupRecord, YearsOfOperation

logger = logging.getLogger(__name__)

# ----------------------------
# Fixed vocabularies
# ----------------------------
FAILURE_REASONS: tuple[str, ...] = (
    "Giants",
    "No Budget",
    "Competition",
    "Poor Market Fit",
    "Acquisition Stagnation",
    "Platform Dependency",
    "Monetization Failure",
    "Niche Limits",
    "Execution Flaws",
    "Trend Shifts",
    "Toxicity/Trust Issues",
    "Regulatory Pressure",
    "Overhype",
)

FUNDING_TIERS: tuple[str, ...] = (
    "Unfunded", "Pre-Seed", "Seed", "Series A", "Series B", "Series C+", "Mega",
)

# (upper bound exclusive, tier); amounts >= the last bound are Mega
_TIER_BOUNDS: tuple[tuple[float, str], ...] = (
    (1, "Pre-Seed"),
    (10, "Seed"),
    (50, "Series A"),
    (100, "Series B"),
    (500, "Series C+"),
)

SECTOR_RENAMES: dict[str, str] = {
    "Accommodation and Food Services": "Food Services",
    "Information": "Information Tech",
}

# Food Services files name the budget reason differently
BUDGET_REASON = "No Budget"
BUDGET_ALT_COLUMN = "High Operational Costs"

DEFAULT_SECTOR_FILES: tuple[str, ...] = (
    "Startup Failure (Finance and Insurance).csv",
    "Startup Failure (Food and services).csv",
    "Startup Failure (Health Care).csv",
    "Startup Failure (Manufactures).csv",
    "Startup Failure (Retail Trade).csv",
    "Startup Failures (Information Sector).csv",
)

COL_NAME = "Name"
COL_SECTOR = "Sector"
COL_YEARS = "Years of Operation"
COL_FUNDING = "How Much They Raised"
COL_WHAT = "What They Did"
COL_WHY = "Why They Failed"
COL_TAKEAWAY = "Takeaway"

EXPECTED_COLUMNS: tuple[str, ...] = (
    COL_NAME, COL_SECTOR, COL_YEARS, COL_FUNDING, COL_WHAT, COL_WHY, COL_TAKEAWAY,
) + FAILURE_REASONS

RECORD_COLUMNS: tuple[str, ...] = (
    "name", "sector", "survival_years", "founding_year", "failure_year",
    "founding_decade", "failure_decade", "what_they_did", "funding_amount",
    "funding_tier", "funding_raw", "is_estimate", "is_corporate_funded",
    "why_they_failed", "takeaway", "total_failure_reasons", "primary_reason",
)

_NULLABLE_INT_COLUMNS = ("founding_year", "failure_year", "founding_decade", "failure_decade")

YEARS_WITH_COUNT_RX = re.compile(r"(\d+)\s*\((\d{4})-(\d{4})\)")
YEARS_RANGE_RX = re.compile(r"(\d{4})-(\d{4})")
FUNDING_RX = re.compile(r"\$?(\d+(?:\.\d+)?|\.\d+)\s*(B|M|K)?", re.I)
LEADING_INT_RX = re.compile(r"\s*([+-]?\d+)")


# ----------------------------
# CSV reading
# ----------------------------
def split_csv_line(line: str) -> list[str]:
    """
    Split one CSV line. A double quote toggles quoting and is dropped;
    commas inside quotes are kept. Doubled quotes are not unescaped.
    """
    fields: list[str] = []
    cur: list[str] = []
    in_quotes = False
    for ch in line:
        if ch == '"':
            in_quotes = not in_quotes
        elif ch == "," and not in_quotes:
            fields.append("".join(cur))
            cur = []
        else:
            cur.append(ch)
    fields.append("".join(cur))
    return fields


def parse_csv_text(text: str) -> pd.DataFrame:
    """
    Parse CSV text into an all-string frame keyed by the (trimmed) header row.
    Short rows are padded with "", extra values dropped, blank lines skipped.
    """
    lines = (text or "").replace("\r", "").strip().split("\n")
    headers = [h.strip() for h in split_csv_line(lines[0])]
    columns = list(dict.fromkeys(headers))

    rows = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = split_csv_line(line)
        row = {}
        for i, h in enumerate(headers):
            row[h] = values[i].strip() if i < len(values) else ""
        rows.append(row)

    return pd.DataFrame.from_records(rows, columns=columns)


def load_sector_csv(path: str | Path) -> pd.DataFrame:
    """
    Read one sector file; warns about expected columns it lacks. Bytes that
    are not UTF-8 become U+FFFD instead of failing the build.
    """
    path = Path(path)
    df = parse_csv_text(path.read_text(encoding="utf-8-sig", errors="replace"))

    present = set(df.columns)
    missing = [c for c in EXPECTED_COLUMNS if c not in present]
    if BUDGET_ALT_COLUMN in present and BUDGET_REASON in missing:
        missing.remove(BUDGET_REASON)
    if missing:
        logger.warning("%s is missing columns %s; those fields will default", path.name, missing)
    return df


def load_sources(data_dir: str | Path, files: Sequence[str] = DEFAULT_SECTOR_FILES) -> list[tuple[str, pd.DataFrame]]:
    """
    Load the sector files in the given order. Missing files are skipped with
    a warning; the build carries on with whatever is left.
    """
    base = Path(data_dir)
    out: list[tuple[str, pd.DataFrame]] = []
    for name in files:
        path = base / name
        if not path.is_file():
            logger.warning("%s not found, skipping", name)
            continue
        df = load_sector_csv(path)
        logger.info("Processing %s: %d startups", name, len(df))
        out.append((name, df))
    return out


# ----------------------------
# Field normalizers (never raise)
# ----------------------------
def parse_years_of_operation(text: str | None) -> YearsOfOperation:
    """
    "2 (2010-2012)" -> (2, 2010, 2012)   literal count wins, no cross-check
    "2010-2023"     -> (13, 2010, 2023)
    anything else   -> (0, None, None)
    """
    if not text:
        return YearsOfOperation(0, None, None)

    m = YEARS_WITH_COUNT_RX.search(text)
    if m:
        return YearsOfOperation(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = YEARS_RANGE_RX.search(text)
    if m:
        founded, failed = int(m.group(1)), int(m.group(2))
        return YearsOfOperation(failed - founded, founded, failed)

    return YearsOfOperation(0, None, None)


def parse_funding(text: str | None) -> FundingInfo:
    """
    Amount raised in millions: "$655M" -> 655, "$1B" -> 1000, "$250K" -> 0.25.
    "$0 (Coinbase-funded)" is corporate money and always (0, False, True),
    even when an "est." marker is present too.
    """
    if not text:
        return FundingInfo(0.0, False, False)

    is_estimate = "est." in text.lower()
    is_corporate = "funded)" in text

    if is_corporate and "$0" in text:
        return FundingInfo(0.0, False, True)

    m = FUNDING_RX.search(text)
    if not m:
        return FundingInfo(0.0, is_estimate, is_corporate)

    amount = float(m.group(1))
    unit = (m.group(2) or "M").upper()
    if unit == "B":
        amount *= 1000
    elif unit == "K":
        amount /= 1000
    return FundingInfo(amount, is_estimate, is_corporate)


def funding_tier(amount: float) -> str:
    if amount is None or math.isnan(amount) or amount <= 0:
        return "Unfunded"
    for bound, tier in _TIER_BOUNDS:
        if amount < bound:
            return tier
    return "Mega"


def normalize_sector(text: str | None) -> str:
    sector = text or ""
    return SECTOR_RENAMES.get(sector, sector)


def parse_flag(cell: Any) -> int:
    """Reason cells are 0/1; blanks, words and non-positive numbers count as 0."""
    if cell is None:
        return 0
    m = LEADING_INT_RX.match(str(cell))
    if not m:
        return 0
    return 1 if int(m.group(1)) > 0 else 0


def decade_of(year: int | None) -> int | None:
    return (year // 10) * 10 if year is not None else None


# ----------------------------
# Record building
# ----------------------------
def _text(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return ""
    return str(value)


def build_record(row: Mapping[str, Any]) -> StartupRecord:
    """Normalize one source row into a StartupRecord."""
    years = parse_years_of_operation(_text(row, COL_YEARS))
    funding_raw = _text(row, COL_FUNDING)
    funding = parse_funding(funding_raw)

    reasons = {r: parse_flag(_text(row, r)) for r in FAILURE_REASONS}
    primary = next((r for r in FAILURE_REASONS if reasons[r] == 1), None)

    return StartupRecord(
        name=_text(row, COL_NAME),
        sector=normalize_sector(_text(row, COL_SECTOR)),
        survival_years=years.survival_years,
        founding_year=years.founding_year,
        failure_year=years.failure_year,
        founding_decade=decade_of(years.founding_year),
        failure_decade=decade_of(years.failure_year),
        what_they_did=_text(row, COL_WHAT),
        funding_amount=funding.amount,
        funding_tier=funding_tier(funding.amount),
        funding_raw=funding_raw,
        is_estimate=funding.is_estimate,
        is_corporate_funded=funding.is_corporate_funded,
        why_they_failed=_text(row, COL_WHY),
        takeaway=_text(row, COL_TAKEAWAY),
        failure_reasons=reasons,
        total_failure_reasons=sum(reasons.values()),
        primary_reason=primary,
    )


def prepare_source(df: pd.DataFrame) -> pd.DataFrame:
    """Per-source column fix-ups applied before sources are merged."""
    out = df.copy()
    if BUDGET_ALT_COLUMN in out.columns:
        out[BUDGET_REASON] = out[BUDGET_ALT_COLUMN]
    return out


def dedup_by_name(df: pd.DataFrame) -> pd.DataFrame:
    """Exact, case-sensitive match on Name; the first row seen wins."""
    if COL_NAME not in df.columns:
        df = df.assign(**{COL_NAME: ""})
    before = len(df)
    out = df.drop_duplicates(subset=[COL_NAME], keep="first").reset_index(drop=True)
    if len(out) < before:
        logger.debug("Dropped %d duplicate startups by name", before - len(out))
    return out


def build_startups(frames: Iterable[pd.DataFrame]) -> tuple[StartupRecord, ...]:
    """
    Merge the sources in order, dedupe by name and build the records.
    Columns a source lacks come through as "" for its rows.
    """
    prepared = [prepare_source(df) for df in frames]
    if not prepared:
        return ()
    merged = pd.concat(prepared, ignore_index=True, sort=False).fillna("")
    merged = dedup_by_name(merged)
    return tuple(build_record(row) for row in merged.to_dict("records"))


def records_to_frame(records: Sequence[StartupRecord]) -> pd.DataFrame:
    """
    Flat analysis frame: one row per record, scalar fields plus one 0/1
    column per failure reason. Year/decade columns are nullable Int64.
    """
    rows = []
    for rec in records:
        row = {c: getattr(rec, c) for c in RECORD_COLUMNS}
        row.update(rec.failure_reasons)
        rows.append(row)

    df = pd.DataFrame.from_records(rows, columns=list(RECORD_COLUMNS) + list(FAILURE_REASONS))
    df = df.astype({c: "Int64" for c in _NULLABLE_INT_COLUMNS})
    df = df.astype({
        "survival_years": "int64",
        "funding_amount": "float64",
        "total_failure_reasons": "int64",
        **{r: "int64" for r in FAILURE_REASONS},
    })
    return df
