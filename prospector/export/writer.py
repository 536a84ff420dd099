"""
Writers for a finished session.

The CSV layout mirrors the tabular sheet users expect: a leading "#" row
number, then one column per discovered field in registry order. Records
missing a field leave the cell empty. A summary JSON records the search
parameters and a per-platform breakdown.
"""

from __future__ import annotations

import csv
import json
import re
from collections import Counter
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any

from prospector.collect.session import SessionResult
from prospector.utils.logging import get_logger

logger = get_logger(__name__)

ROW_NUMBER_COLUMN = "#"
UNKNOWN_PLATFORM = "Unknown"
SUPPORTED_FORMATS = ("csv", "json")

_WHITESPACE = re.compile(r"\s+")


def build_output_stem(term: str, city: str, depth: str, timestamp: datetime | None = None) -> str:
    """File stem: scraped_<term>_<city>_<depth>_<timestamp>."""
    stamp = (timestamp or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    term_part = _WHITESPACE.sub("_", term.strip())
    city_part = _WHITESPACE.sub("_", city.strip())
    return f"scraped_{term_part}_{city_part}_{depth}_{stamp}"


def write_csv(result: SessionResult, path: Path) -> Path:
    """Write records as CSV with a leading row number column."""
    fieldnames = [ROW_NUMBER_COLUMN, *result.fields]
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames, restval="", extrasaction="ignore")
        writer.writeheader()
        for number, record in enumerate(result.records, start=1):
            writer.writerow({ROW_NUMBER_COLUMN: number, **record})

    return path


def write_json(result: SessionResult, path: Path) -> Path:
    """Write the full session result as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
    return path


def platform_breakdown(records: Iterable[dict[str, Any]]) -> dict[str, int]:
    """Record count per platform, in first-seen order."""
    counts = Counter(str(r.get("platform") or UNKNOWN_PLATFORM) for r in records)
    return dict(counts)


def build_summary(
    result: SessionResult,
    term: str,
    city: str,
    country: str,
    depth: str,
    searched_at: datetime | None = None,
) -> dict[str, Any]:
    """Search parameters and totals for a finished run."""
    return {
        "search": {
            "term": term,
            "city": city,
            "country": country,
            "depth": depth,
            "date": (searched_at or datetime.now()).isoformat(timespec="seconds"),
        },
        "total_records": len(result.records),
        "target_budget": result.target_budget,
        "shortfall": result.shortfall,
        "outcome": result.outcome.value,
        "field_count": len(result.fields),
        "fields": list(result.fields),
        "sources_consulted": [s.model_dump() for s in result.sources_consulted],
        "platform_breakdown": platform_breakdown(result.records),
    }


def write_summary(summary: dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    return path


def export_result(
    result: SessionResult,
    output_dir: Path,
    stem: str,
    formats: Iterable[str] = SUPPORTED_FORMATS,
    summary: dict[str, Any] | None = None,
) -> dict[str, Path]:
    """Write the requested formats (plus the summary, if given).

    Returns:
        Mapping of format name ("csv", "json", "summary") to written path.
    """
    written: dict[str, Path] = {}
    for fmt in formats:
        if fmt == "csv":
            written["csv"] = write_csv(result, output_dir / f"{stem}.csv")
        elif fmt == "json":
            written["json"] = write_json(result, output_dir / f"{stem}.json")
        else:
            raise ValueError(f"Unsupported export format: {fmt}")

    if summary is not None:
        written["summary"] = write_summary(summary, output_dir / f"{stem}_summary.json")

    logger.info("Results exported", files={k: str(v) for k, v in written.items()})
    return written
