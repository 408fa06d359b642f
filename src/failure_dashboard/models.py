"""Record and snapshot types shared by the build stages.

`StartupRecord` is one deduplicated source row after normalization;
`Dataset` is the frozen document handed to the dashboard front end.
Both serialise to the camelCase keys the chart code reads.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, NamedTuple


class YearsOfOperation(NamedTuple):
    survival_years: int
    founding_year: int | None
    failure_year: int | None


class FundingInfo(NamedTuple):
    amount: float
    is_estimate: bool
    is_corporate_funded: bool


@dataclass(frozen=True)
class StartupRecord:
    name: str
    sector: str
    survival_years: int
    founding_year: int | None
    failure_year: int | None
    founding_decade: int | None
    failure_decade: int | None
    what_they_did: str
    funding_amount: float
    funding_tier: str
    funding_raw: str
    is_estimate: bool
    is_corporate_funded: bool
    why_they_failed: str
    takeaway: str
    failure_reasons: Mapping[str, int]
    total_failure_reasons: int
    primary_reason: str | None

    def __post_init__(self) -> None:
        # read-only view so a built record can't be edited through its reasons
        object.__setattr__(self, "failure_reasons", MappingProxyType(dict(self.failure_reasons)))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "sector": self.sector,
            "survivalYears": self.survival_years,
            "foundingYear": self.founding_year,
            "failureYear": self.failure_year,
            "foundingDecade": self.founding_decade,
            "failureDecade": self.failure_decade,
            "whatTheyDid": self.what_they_did,
            "fundingAmount": self.funding_amount,
            "fundingTier": self.funding_tier,
            "fundingRaw": self.funding_raw,
            "isEstimate": self.is_estimate,
            "isCorporateFunded": self.is_corporate_funded,
            "whyTheyFailed": self.why_they_failed,
            "takeaway": self.takeaway,
            "failureReasons": dict(self.failure_reasons),
            "totalFailureReasons": self.total_failure_reasons,
            "primaryReason": self.primary_reason,
        }


@dataclass(frozen=True)
class Dataset:
    """Immutable build snapshot.

    The views are computed once from `startups`; rebuild the whole dataset
    instead of editing it. `to_dict()` hands out a deep copy so consumers
    can't reach back into the snapshot.
    """

    startups: tuple[StartupRecord, ...]
    failure_reasons: tuple[str, ...]
    by_sector: dict[str, dict[str, Any]]
    by_reason: dict[str, dict[str, Any]]
    co_occurrence: dict[str, dict[str, int]]
    by_funding_tier: dict[str, dict[str, Any]]
    by_failure_year: dict[int, dict[str, Any]]
    by_decade: dict[int, dict[str, Any]]
    top_funded: tuple[dict[str, Any], ...]
    notable_failures: tuple[dict[str, Any], ...]
    summary: dict[str, Any]
    insights: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy({
            "startups": [s.to_dict() for s in self.startups],
            "failureReasons": list(self.failure_reasons),
            "bySector": self.by_sector,
            "byReason": self.by_reason,
            "coOccurrence": self.co_occurrence,
            "byFundingTier": self.by_funding_tier,
            "byFailureYear": self.by_failure_year,
            "byDecade": self.by_decade,
            "topFunded": list(self.top_funded),
            "notableFailures": list(self.notable_failures),
            "summary": self.summary,
            "insights": self.insights,
        })
