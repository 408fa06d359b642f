"""Cross-cutting statistics for the patterns and funding tabs.

These used to be recomputed in the browser on every render; computing them
once at build time keeps the front end to pure drawing. All of them look at
"funded" startups only, i.e. a known raise and at least one year of survival,
because log-funding and survival are meaningless for the rest.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd

from .data_prep import FAILURE_REASONS, FUNDING_TIERS
from .metrics import round_half_up

CORRELATION_VARIABLES = (
    "Funding", "Survival", "Giants", "Competition", "No Budget", "Poor Market Fit", "Execution Flaws",
)

# Seed through Mega
CURVE_TIERS = FUNDING_TIERS[2:]


def funded_only(df: pd.DataFrame) -> pd.DataFrame:
    return df[(df["funding_amount"] > 0) & (df["survival_years"] > 0)]


def _variable(df: pd.DataFrame, name: str) -> np.ndarray:
    if name == "Funding":
        return np.log10(df["funding_amount"].to_numpy(dtype=float) + 1)
    if name == "Survival":
        return df["survival_years"].to_numpy(dtype=float)
    return df[name].to_numpy(dtype=float)


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """Pearson r; 0 when either side is constant or there are < 2 points."""
    x = np.asarray(x, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(x) < 2 or x.var() == 0 or y.var() == 0:
        return 0.0
    return float(np.corrcoef(x, y)[0, 1])


def correlation_matrix(df: pd.DataFrame) -> list[dict[str, Any]]:
    funded = funded_only(df)
    values = {v: _variable(funded, v) for v in CORRELATION_VARIABLES}
    out = []
    for v1 in CORRELATION_VARIABLES:
        for v2 in CORRELATION_VARIABLES:
            out.append({"x": v1, "y": v2, "value": round_half_up(pearson(values[v1], values[v2]), 3)})
    return out


def funding_survival_trend(df: pd.DataFrame) -> dict[str, Any]:
    """Least-squares line of survival years on log10(funding + 1)."""
    funded = funded_only(df)
    x = _variable(funded, "Funding")
    y = _variable(funded, "Survival")
    n = len(x)
    if n == 0:
        return {"slope": 0.0, "intercept": 0.0, "rSquared": 0.0, "n": 0}

    x_mean, y_mean = x.mean(), y.mean()
    den = float(((x - x_mean) ** 2).sum())
    slope = float(((x - x_mean) * (y - y_mean)).sum()) / den if den else 0.0
    intercept = float(y_mean - slope * x_mean)

    ss_res = float(((y - (slope * x + intercept)) ** 2).sum())
    ss_tot = float(((y - y_mean) ** 2).sum())
    r_squared = 1 - ss_res / ss_tot if ss_tot else 0.0
    return {
        "slope": round_half_up(slope, 4),
        "intercept": round_half_up(intercept, 4),
        "rSquared": round_half_up(r_squared, 4),
        "n": n,
    }


def survival_curves(df: pd.DataFrame, max_years: int = 20, min_total: int = 5) -> list[dict[str, Any]]:
    """
    Share of each tier from Seed up still operating after 0..max_years
    years (percent). Unfunded and Pre-Seed startups get no curve.
    """
    out = []
    for tier in CURVE_TIERS:
        years = df.loc[(df["funding_tier"] == tier) & (df["survival_years"] > 0), "survival_years"].to_numpy()
        total = len(years)
        if total < min_total:
            continue
        curve = [
            {"year": y, "survival": round_half_up((years >= y).sum() / total * 100, 1)}
            for y in range(max_years + 1)
        ]
        out.append({"tier": tier, "total": total, "curve": curve})
    return out


def sector_efficiency(df: pd.DataFrame, sectors: Sequence[str]) -> list[dict[str, Any]]:
    """Capital burned per year survived, highest first."""
    funded = funded_only(df)
    rows = []
    for sector in sectors:
        sub = funded[funded["sector"] == sector]
        total_funding = float(sub["funding_amount"].sum())
        total_years = int(sub["survival_years"].sum())
        n = len(sub)
        rows.append({
            "sector": sector,
            "efficiency": round_half_up(total_funding / total_years, 2) if total_years > 0 else 0,
            "count": n,
            "avgFunding": round_half_up(total_funding / n, 2) if n else 0,
            "avgSurvival": round_half_up(total_years / n, 2) if n else 0,
        })
    return sorted(rows, key=lambda r: -r["efficiency"])


def headline_insights(
    df: pd.DataFrame,
    sectors: Mapping[str, Mapping[str, Any]],
    min_reason_count: int = 10,
) -> dict[str, Any]:
    n = len(df)
    funded = funded_only(df)

    deadliest: dict[str, Any] | None = None
    for reason in FAILURE_REASONS:
        affected = df.loc[df[reason] == 1, "survival_years"]
        if len(affected) < min_reason_count:
            continue
        avg = float(affected.mean())
        if deadliest is None or avg < deadliest["avgSurvival"]:
            deadliest = {"reason": reason, "avgSurvival": avg, "count": len(affected)}
    if deadliest:
        deadliest["avgSurvival"] = round_half_up(deadliest["avgSurvival"], 2)

    sink = None
    if sectors:
        top = max(sectors.values(), key=lambda s: s["totalFunding"])
        sink = {"sector": top["sector"], "funding": top["totalFunding"], "count": top["count"]}

    multi = int((df["total_failure_reasons"] >= 3).sum())
    return {
        "fundingSurvivalCorrelation": round_half_up(
            pearson(_variable(funded, "Funding"), _variable(funded, "Survival")), 3
        ),
        "deadliestReason": deadliest,
        "multiReasonRate": round_half_up(multi / n * 100, 1) if n else 0,
        "avgReasons": round_half_up(df["total_failure_reasons"].mean(), 2) if n else 0,
        "biggestCapitalSink": sink,
    }


def build_insights(df: pd.DataFrame, sectors: Mapping[str, Mapping[str, Any]]) -> dict[str, Any]:
    return {
        "correlations": correlation_matrix(df),
        "fundingSurvivalTrend": funding_survival_trend(df),
        "survivalCurves": survival_curves(df),
        "sectorEfficiency": sector_efficiency(df, list(sectors)),
        "headlines": headline_insights(df, sectors),
    }
