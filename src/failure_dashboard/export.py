"""Writers for the dashboard data artifact.

The static front end loads ``js/data.js`` with a plain <script> tag, so the
dataset is emitted as a JavaScript module defining a global ``DATA``. A plain
JSON copy can be written alongside for other consumers.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from .models import Dataset

logger = logging.getLogger(__name__)

# (document key, comment) in output order
SECTIONS: list[tuple[str, str]] = [
    ("startups", "All startups with full details"),
    ("failureReasons", "Failure reason definitions"),
    ("bySector", "Aggregations by sector"),
    ("byReason", "Aggregations by failure reason"),
    ("coOccurrence", "Co-occurrence matrix (which reasons appear together)"),
    ("byFundingTier", "Aggregations by funding tier"),
    ("byFailureYear", "Aggregations by failure year"),
    ("byDecade", "Aggregations by decade"),
    ("topFunded", "Top most funded failures"),
    ("notableFailures", "Notable failures for case studies"),
    ("summary", "Summary statistics"),
    ("insights", "Precomputed correlations, trends and headline insights"),
]


def _dumps(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def render_data_module(dataset: Dataset) -> str:
    doc: dict[str, Any] = dataset.to_dict()
    summary = doc["summary"]

    parts = []
    for key, comment in SECTIONS:
        parts.append(f"  // {comment}\n  {key}: {_dumps(doc[key])}")

    return (
        "// Startup Failures Dashboard - Data Module\n"
        "// Generated from sector-specific CSV files\n"
        f"// {len(doc['startups'])} startups from {summary['minYear']} to {summary['maxYear']}\n"
        "\n"
        "const DATA = {\n"
        + ",\n\n".join(parts)
        + "\n};\n"
        "\n"
        "// Export for use in other modules\n"
        "if (typeof module !== 'undefined') module.exports = DATA;\n"
    )


def _write_text(path: str | Path, text: str) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    logger.info("Generated %s", path)
    return path


def write_data_module(dataset: Dataset, path: str | Path) -> Path:
    return _write_text(path, render_data_module(dataset))


def write_json(dataset: Dataset, path: str | Path) -> Path:
    return _write_text(path, _dumps(dataset.to_dict()) + "\n")
