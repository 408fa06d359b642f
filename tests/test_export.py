from __future__ import annotations

import json
from pathlib import Path

import pandas as pd
import pytest

from failure_dashboard.export import SECTIONS, render_data_module, write_data_module, write_json
from failure_dashboard.models import Dataset
from failure_dashboard.pipeline import build_dataset


@pytest.fixture
def dataset(sample_frames: list[pd.DataFrame]) -> Dataset:
    return build_dataset(sample_frames)


def _module_payload(text: str) -> dict:
    """Strip the JS wrapper and parse what's left; keys are bare identifiers."""
    body = text.split("const DATA = ", 1)[1].split("\n};\n", 1)[0] + "\n}"
    lines = []
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith("//"):
            continue
        for key, _ in SECTIONS:
            if line.startswith(f"  {key}: "):
                line = f'  "{key}": ' + line[len(f"  {key}: "):]
        lines.append(line)
    return json.loads("\n".join(lines))


def test_render_data_module_header_and_footer(dataset: Dataset) -> None:
    text = render_data_module(dataset)

    assert text.startswith("// Startup Failures Dashboard - Data Module\n")
    assert "// 6 startups from 2012 to 2023\n" in text
    assert "const DATA = {\n" in text
    assert text.rstrip().endswith("if (typeof module !== 'undefined') module.exports = DATA;")


def test_render_data_module_sections_in_order(dataset: Dataset) -> None:
    text = render_data_module(dataset)
    positions = [text.index(f"\n  {key}: ") for key, _ in SECTIONS]
    assert positions == sorted(positions)
    for _, comment in SECTIONS:
        assert f"  // {comment}\n" in text


def test_render_data_module_body_is_the_dataset(dataset: Dataset) -> None:
    payload = _module_payload(render_data_module(dataset))
    doc = dataset.to_dict()

    assert [s["name"] for s in payload["startups"]] == ["Foo", "Bar", "Baz", "Eatly", "Chatty", "Comma, Inc."]
    assert payload["summary"] == doc["summary"]
    assert payload["failureReasons"] == doc["failureReasons"]
    # integer keys come back as strings, the way the front end reads them
    assert list(payload["byFailureYear"]) == ["2012", "2014", "2018", "2020", "2023"]


def test_render_keeps_non_ascii_text(sample_frames: list[pd.DataFrame]) -> None:
    sample_frames[0].loc[0, "Takeaway"] = "Café culture isn't a moat"
    text = render_data_module(build_dataset(sample_frames))
    assert "Café culture" in text


def test_write_data_module_creates_parent_dirs(dataset: Dataset, tmp_path: Path) -> None:
    out = write_data_module(dataset, tmp_path / "js" / "nested" / "data.js")
    assert out.exists()
    assert out.read_text(encoding="utf-8") == render_data_module(dataset)


def test_write_json(dataset: Dataset, tmp_path: Path) -> None:
    out = write_json(dataset, tmp_path / "data.json")
    doc = json.loads(out.read_text(encoding="utf-8"))
    assert doc["summary"]["totalStartups"] == 6
    assert list(doc) == [key for key, _ in SECTIONS]


def test_empty_dataset_renders(tmp_path: Path) -> None:
    text = render_data_module(build_dataset([]))
    assert "// 0 startups from None to None" in text
    payload = _module_payload(text)
    assert payload["startups"] == []
    assert payload["summary"]["peakFailureYear"] is None
