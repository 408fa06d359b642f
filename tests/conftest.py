"""Shared fixtures: small sector CSVs shaped like the real exports."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pandas as pd
import pytest

from factories import FINANCE_ROWS, FOOD_ROWS, INFO_ROWS, csv_text
from failure_dashboard.config import clear_settings_cache
from failure_dashboard.data_prep import DEFAULT_SECTOR_FILES, build_startups, parse_csv_text, records_to_frame


@pytest.fixture
def sector_texts() -> list[tuple[str, str]]:
    """(file name, csv text) in the default processing order."""
    return [
        (DEFAULT_SECTOR_FILES[0], csv_text(FINANCE_ROWS)),
        (DEFAULT_SECTOR_FILES[1], csv_text(FOOD_ROWS, budget_column="High Operational Costs")),
        (DEFAULT_SECTOR_FILES[5], csv_text(INFO_ROWS)),
    ]


@pytest.fixture
def sample_frames(sector_texts: list[tuple[str, str]]) -> list[pd.DataFrame]:
    return [parse_csv_text(text) for _, text in sector_texts]


@pytest.fixture
def sector_dir(tmp_path: Path, sector_texts: list[tuple[str, str]]) -> Path:
    data_dir = tmp_path / "Data"
    data_dir.mkdir()
    for name, text in sector_texts:
        (data_dir / name).write_text(text, encoding="utf-8")
    return data_dir


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    # keep a developer's .env or FAILBOARD_* vars out of the tests
    monkeypatch.chdir(tmp_path)
    for key in [k for k in list(os.environ) if k.startswith(("FAILBOARD_", "BUILD__", "LOGGING__"))]:
        monkeypatch.delenv(key, raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def sample_df(sample_frames: list[pd.DataFrame]) -> pd.DataFrame:
    return records_to_frame(build_startups(sample_frames))
