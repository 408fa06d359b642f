from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import numpy as np
import pandas as pd

from .data_prep import FAILURE_REASONS, FUNDING_TIERS

REASONS = list(FAILURE_REASONS)

TOP_FUNDED_FIELDS = {
    "name": "name",
    "sector": "sector",
    "fundingAmount": "funding_amount",
    "survivalYears": "survival_years",
    "primaryReason": "primary_reason",
    "takeaway": "takeaway",
}

NOTABLE_FIELDS = {
    "name": "name",
    "sector": "sector",
    "fundingAmount": "funding_amount",
    "fundingTier": "funding_tier",
    "survivalYears": "survival_years",
    "foundingYear": "founding_year",
    "failureYear": "failure_year",
    "whatTheyDid": "what_they_did",
    "whyTheyFailed": "why_they_failed",
    "takeaway": "takeaway",
    "primaryReason": "primary_reason",
    "totalFailureReasons": "total_failure_reasons",
}


# ----------------------------
# Helpers
# ----------------------------
def round_half_up(value: Any, places: int = 2):
    """Decimal rounding with halves going away from zero (2.675 -> 2.68)."""
    value = float(value)
    if not math.isfinite(value):
        return 0 if places == 0 else 0.0
    q = Decimal(1).scaleb(-places)
    d = Decimal(repr(value)).quantize(q, rounding=ROUND_HALF_UP)
    return int(d) if places == 0 else float(d)


def _avg(total: Any, count: int, places: int = 2) -> float:
    return round_half_up(float(total) / count, places) if count else 0


def _native(v: Any) -> Any:
    # pandas/numpy scalars -> plain python so json.dumps takes them
    if v is None or v is pd.NA:
        return None
    if isinstance(v, float) and math.isnan(v):
        return None
    if isinstance(v, np.integer):
        return int(v)
    if isinstance(v, np.floating):
        return None if np.isnan(v) else float(v)
    if isinstance(v, np.bool_):
        return bool(v)
    return v


def _project(df: pd.DataFrame, fields: Mapping[str, str]) -> list[dict[str, Any]]:
    cols = list(fields.values())
    out = []
    for row in df[cols].to_dict("records"):
        out.append({key: _native(row[col]) for key, col in fields.items()})
    return out


def _reason_counts(df: pd.DataFrame) -> dict[str, int]:
    sums = df[REASONS].sum()
    return {r: int(sums[r]) for r in REASONS}


# ----------------------------
# Views
# ----------------------------
def by_sector(df: pd.DataFrame) -> dict[str, dict[str, Any]]:
    """Per-sector totals and averages, sectors in first-seen order."""
    grouped = df.groupby("sector", sort=False)
    agg = grouped.agg(
        count=("name", "size"),
        totalFunding=("funding_amount", "sum"),
        totalSurvival=("survival_years", "sum"),
    )
    reasons = grouped[REASONS].sum()

    out: dict[str, dict[str, Any]] = {}
    for sector, row in agg.to_dict("index").items():
        count = int(row["count"])
        total_funding = float(row["totalFunding"])
        total_survival = int(row["totalSurvival"])
        out[sector] = {
            "sector": sector,
            "count": count,
            "totalFunding": total_funding,
            "totalSurvival": total_survival,
            "reasonCounts": {r: int(reasons.at[sector, r]) for r in REASONS},
            "avgFunding": _avg(total_funding, count),
            "avgSurvival": _avg(total_survival, count),
        }
    return out


def by_reason(df: pd.DataFrame, sectors: Sequence[str]) -> dict[str, dict[str, Any]]:
    """One entry per canonical reason, with a per-sector breakdown over `sectors`."""
    total = len(df)
    out: dict[str, dict[str, Any]] = {}
    for reason in REASONS:
        affected = df[df[reason] == 1]
        n = len(affected)
        per_sector = affected.groupby("sector").size()
        out[reason] = {
            "reason": reason,
            "count": n,
            "percentage": round_half_up(n / total * 100, 1) if total else 0,
            "avgFunding": _avg(affected["funding_amount"].sum(), n),
            "avgSurvival": _avg(affected["survival_years"].sum(), n),
            "bySector": {s: int(per_sector.get(s, 0)) for s in sectors},
        }
    return out


def co_occurrence(df: pd.DataFrame) -> dict[str, dict[str, int]]:
    """Cell [a][b] counts startups flagged with both a and b; the diagonal is the reason count."""
    flags = df[REASONS].to_numpy(dtype=np.int64)
    both = flags.T @ flags
    return {
        r1: {r2: int(both[i, j]) for j, r2 in enumerate(REASONS)}
        for i, r1 in enumerate(REASONS)
    }


def by_funding_tier(df: pd.DataFrame) -> dict[str, dict[str, Any]]:
    """
    Every tier is present, even with no startups. topReason is the reason with
    the highest summed flags; ties (including an empty tier) go to the
    earliest canonical reason.
    """
    out: dict[str, dict[str, Any]] = {}
    for tier in FUNDING_TIERS:
        sub = df[df["funding_tier"] == tier]
        n = len(sub)
        counts = sub[REASONS].sum()
        out[tier] = {
            "tier": tier,
            "count": n,
            "avgSurvival": _avg(sub["survival_years"].sum(), n),
            "totalFunding": float(sub["funding_amount"].sum()),
            "topReason": str(counts.idxmax()) if len(counts) else None,
        }
    return out


def by_failure_year(df: pd.DataFrame) -> dict[int, dict[str, Any]]:
    dated = df[df["failure_year"].notna()]
    out: dict[int, dict[str, Any]] = {}
    for year, sub in dated.groupby("failure_year", sort=True):
        y = int(year)
        out[y] = {
            "year": y,
            "count": len(sub),
            "totalFunding": float(sub["funding_amount"].sum()),
            "startups": sub["name"].tolist(),
        }
    return out


def by_decade(df: pd.DataFrame) -> dict[int, dict[str, Any]]:
    dated = df[df["failure_decade"].notna()]
    out: dict[int, dict[str, Any]] = {}
    for decade, sub in dated.groupby("failure_decade", sort=True):
        d = int(decade)
        out[d] = {
            "decade": d,
            "count": len(sub),
            "totalFunding": float(sub["funding_amount"].sum()),
            "reasonCounts": _reason_counts(sub),
        }
    return out


def top_funded(df: pd.DataFrame, limit: int = 30) -> list[dict[str, Any]]:
    # stable: equal amounts keep their input order
    ranked = df.sort_values("funding_amount", ascending=False, kind="stable").head(limit)
    return _project(ranked, TOP_FUNDED_FIELDS)


def notable_failures(
    df: pd.DataFrame,
    *,
    min_funding: float = 50,
    min_survival: int = 10,
    min_takeaway_len: int = 10,
) -> list[dict[str, Any]]:
    """Case-study candidates: big raises, long runs, or a written takeaway."""
    keep = (
        (df["funding_amount"] >= min_funding)
        | (df["survival_years"] >= min_survival)
        | (df["takeaway"].astype(str).str.len() > min_takeaway_len)
    )
    return _project(df.loc[keep], NOTABLE_FIELDS)


def summary(
    df: pd.DataFrame,
    reasons: Mapping[str, Mapping[str, Any]],
    years: Mapping[int, Mapping[str, Any]],
    sector_count: int,
) -> dict[str, Any]:
    n = len(df)
    ordered_years = sorted(years)

    peak: dict[str, int] | None = None
    for y in ordered_years:
        if peak is None or years[y]["count"] > peak["count"]:
            peak = {"year": y, "count": int(years[y]["count"])}

    # max() keeps the first of equal counts, i.e. canonical order
    top_reason = max(REASONS, key=lambda r: reasons[r]["count"]) if reasons else None

    return {
        "totalStartups": n,
        "totalFundingLost": round_half_up(df["funding_amount"].sum(), 0),
        "avgSurvivalYears": _avg(df["survival_years"].sum(), n),
        "minYear": ordered_years[0] if ordered_years else None,
        "maxYear": ordered_years[-1] if ordered_years else None,
        "peakFailureYear": peak,
        "sectorCount": sector_count,
        "topReason": top_reason,
    }
