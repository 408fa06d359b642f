"""Orchestrator: load sources -> records -> views -> data module."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import pandas as pd

from . import metrics
from .config import BuildConfig
from .data_prep import FAILURE_REASONS, build_startups, load_sources, records_to_frame
from .export import write_data_module, write_json
from .insights import build_insights
from .models import Dataset

logger = logging.getLogger(__name__)


def build_dataset(frames: Iterable[pd.DataFrame], config: BuildConfig | None = None) -> Dataset:
    """
    Pure transformation from raw source frames (in source order) to a frozen
    Dataset. Nothing outlives the call; rebuild to refresh.
    """
    config = config or BuildConfig()
    startups = build_startups(frames)
    df = records_to_frame(startups)

    sectors = metrics.by_sector(df)
    reasons = metrics.by_reason(df, list(sectors))
    years = metrics.by_failure_year(df)

    return Dataset(
        startups=startups,
        failure_reasons=FAILURE_REASONS,
        by_sector=sectors,
        by_reason=reasons,
        co_occurrence=metrics.co_occurrence(df),
        by_funding_tier=metrics.by_funding_tier(df),
        by_failure_year=years,
        by_decade=metrics.by_decade(df),
        top_funded=tuple(metrics.top_funded(df, limit=config.top_funded_limit)),
        notable_failures=tuple(metrics.notable_failures(
            df,
            min_funding=config.notable_min_funding,
            min_survival=config.notable_min_survival,
            min_takeaway_len=config.notable_min_takeaway,
        )),
        summary=metrics.summary(df, reasons, years, sector_count=len(sectors)),
        insights=build_insights(df, sectors),
    )


def log_summary(dataset: Dataset) -> None:
    s = dataset.summary
    peak = s["peakFailureYear"] or {}
    logger.info("Total unique startups: %d", len(dataset.startups))
    logger.info("Total funding lost: $%sM", s["totalFundingLost"])
    logger.info("Avg survival: %s years", s["avgSurvivalYears"])
    logger.info("Date range: %s-%s", s["minYear"], s["maxYear"])
    logger.info("Peak year: %s (%s failures)", peak.get("year"), peak.get("count"))
    logger.info("Top reason: %s", s["topReason"])


def run_build(config: BuildConfig) -> Dataset:
    """Read the configured sources, build the dataset and write the outputs."""
    loaded = load_sources(config.data_dir, config.sector_files)
    if not loaded:
        logger.warning("No sector files found in %s; writing an empty dataset", config.data_dir)

    dataset = build_dataset((df for _, df in loaded), config)
    log_summary(dataset)

    write_data_module(dataset, config.out_path)
    if config.json_out_path:
        write_json(dataset, config.json_out_path)
    return dataset
