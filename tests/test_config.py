from __future__ import annotations

from pathlib import Path

import pytest

from failure_dashboard.config import (
    BuildConfig,
    LoggingSettings,
    Settings,
    ValidationError,
    clear_settings_cache,
    get_settings,
)
from failure_dashboard.data_prep import DEFAULT_SECTOR_FILES


def test_defaults() -> None:
    s = Settings.from_env(env={}, env_file="missing.env")
    assert s.build.data_dir == "./Data"
    assert s.build.out_path == "./js/data.js"
    assert s.build.json_out_path is None
    assert s.build.sector_files == list(DEFAULT_SECTOR_FILES)
    assert s.build.top_funded_limit == 30
    assert s.logging.level == "INFO"
    assert s.logging.json_logs is False


def test_flat_and_nested_env_names() -> None:
    s = Settings.from_env(
        env={
            "FAILBOARD_DATA_DIR": "/srv/csv",
            "BUILD__OUT_PATH": "dist/data.js",
            "FAILBOARD_OUT": "ignored.js",
            "FAILBOARD_TOP_FUNDED": "5",
            "FAILBOARD_LOG_LEVEL": "debug",
            "FAILBOARD_LOG_JSON": "yes",
        },
        env_file="missing.env",
    )
    assert s.build.data_dir == "/srv/csv"
    assert s.build.out_path == "dist/data.js"  # nested name wins
    assert s.build.top_funded_limit == 5
    assert s.logging.level == "DEBUG"
    assert s.logging.json_logs is True


def test_dotenv_is_overridden_by_process_env(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# local overrides\n"
        "FAILBOARD_DATA_DIR='from-dotenv'\n"
        'FAILBOARD_JSON_OUT="build/data.json"\n'
        "not a setting\n",
        encoding="utf-8",
    )
    s = Settings.from_env(env={"FAILBOARD_DATA_DIR": "from-env"}, env_file=str(env_file))
    assert s.build.data_dir == "from-env"
    assert s.build.json_out_path == "build/data.json"


def test_sector_files_from_comma_string_keeps_order_and_drops_repeats() -> None:
    cfg = BuildConfig(sector_files=" b.csv, a.csv,,b.csv ")
    assert cfg.sector_files == ["b.csv", "a.csv"]


@pytest.mark.parametrize(
    "field, value",
    [
        ("sector_files", ""),
        ("sector_files", 42),
        ("data_dir", "  "),
        ("top_funded_limit", 0),
        ("top_funded_limit", "lots"),
        ("notable_min_funding", -1),
    ],
)
def test_invalid_build_values(field: str, value: object) -> None:
    with pytest.raises(ValidationError):
        BuildConfig(**{field: value})


def test_blank_json_out_means_none() -> None:
    assert BuildConfig(json_out_path="  ").json_out_path is None


def test_unknown_log_level_falls_back_to_info() -> None:
    assert LoggingSettings(level="chatty").level == "INFO"


def test_settings_are_frozen() -> None:
    s = Settings()
    with pytest.raises(ValidationError):
        s.build.data_dir = "elsewhere"  # type: ignore[misc]


def test_with_overrides_ignores_none_and_revalidates() -> None:
    s = Settings()
    assert s.with_overrides(data_dir=None) is s

    changed = s.with_overrides(out_path="out/data.js", top_funded_limit=3)
    assert changed.build.out_path == "out/data.js"
    assert changed.build.top_funded_limit == 3
    assert changed.build.data_dir == s.build.data_dir

    with pytest.raises(ValidationError):
        s.with_overrides(top_funded_limit=-1)


def test_get_settings_caches_until_reload(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FAILBOARD_TOP_FUNDED", "7")
    first = get_settings()
    assert first.build.top_funded_limit == 7

    monkeypatch.setenv("FAILBOARD_TOP_FUNDED", "8")
    assert get_settings() is first
    assert get_settings(reload=True).build.top_funded_limit == 8

    clear_settings_cache()
    monkeypatch.delenv("FAILBOARD_TOP_FUNDED")
    assert get_settings().build.top_funded_limit == 30
