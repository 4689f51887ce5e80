"""Step 2 – Run every analytical view and write the report files.

Standalone: python output.py [--input PATH] [--run-id YYYYMMDD_HHMMSS] [--name NAME]
Module:     from output import run_output
"""

from __future__ import annotations

import csv
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence

from pydantic import BaseModel

import views
from load import BirthRecord, run_load
from regions import RegionMapping, raw_region_mappings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants (adjust as needed)
# ---------------------------------------------------------------------------

TOP_N: int = 3
NAME_LENGTH_LIMIT: int = 5
TREND_TARGETS: tuple[tuple[str, str], ...] = (("Michael", "M"), ("Jessica", "F"))
PERCENTAGE_NAME: str = "Marina"
FIRST_YEAR: int | None = None       # None → earliest year in the data
LAST_YEAR: int | None = None        # None → latest year in the data
UNMAPPED_LABEL: str = "unmapped"
REPORTS_DIR: str = "reports"

ViewJob = Callable[[], Sequence[BaseModel]]


# ---------------------------------------------------------------------------
# View registry
# ---------------------------------------------------------------------------


def build_view_jobs(
    records: Sequence[BirthRecord],
    mappings: Sequence[RegionMapping],
    percentage_name: str = PERCENTAGE_NAME,
) -> dict[str, tuple[ViewJob, type[BaseModel]]]:
    """Report name → (zero-argument callable producing the rows, row model)."""
    jobs: dict[str, tuple[ViewJob, type[BaseModel]]] = {
        "top_name_by_gender": (lambda: views.top_name_by_gender(records), views.TopNameRow),
    }
    for name, gender in TREND_TARGETS:
        jobs[f"name_trend_{name.lower()}_{gender.lower()}"] = (
            lambda name=name, gender=gender: views.name_trend(records, name, gender),
            views.NameTrendRow,
        )
    jobs.update({
        "rank_delta": (
            lambda: views.rank_delta_first_vs_last_year(records, FIRST_YEAR, LAST_YEAR),
            views.RankDeltaRow,
        ),
        "top_per_year": (lambda: views.top_n_per_year_by_gender(records, TOP_N), views.TopYearRow),
        "top_per_decade": (lambda: views.top_n_per_decade_by_gender(records, TOP_N), views.TopDecadeRow),
        "births_by_region": (lambda: views.births_by_region(records, mappings), views.RegionBirthsRow),
        "top_per_region": (
            lambda: views.top_n_per_region_by_gender(records, mappings, TOP_N),
            views.TopRegionRow,
        ),
        "longest_names": (
            lambda: views.name_length_extremes(records, NAME_LENGTH_LIMIT)[0],
            views.NameLengthRow,
        ),
        "shortest_names": (
            lambda: views.name_length_extremes(records, NAME_LENGTH_LIMIT)[1],
            views.NameLengthRow,
        ),
        "extreme_length_popularity": (
            lambda: views.popularity_by_extreme_length(records),
            views.NameLengthPopularityRow,
        ),
        f"state_percentage_{percentage_name.lower()}": (
            lambda: views.state_percentage_for_name(records, percentage_name),
            views.StatePercentageRow,
        ),
    })
    return jobs


# ---------------------------------------------------------------------------
# CSV / JSON writers
# ---------------------------------------------------------------------------


def _row_dict(row: BaseModel) -> dict:
    data = row.model_dump()
    if "region" in data and data["region"] is None:
        data["region"] = UNMAPPED_LABEL
    return data


def _write_csv(filepath: str, rows: list[dict], fieldnames: list[str]) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w", newline="") as fh:
        writer = csv.DictWriter(fh, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    logger.info("output: wrote %s (%d rows)", filepath, len(rows))


def _write_json(filepath: str, data: dict[str, list[dict]]) -> None:
    Path(filepath).parent.mkdir(parents=True, exist_ok=True)
    Path(filepath).write_text(json.dumps(data, indent=2))
    logger.info("output: wrote %s (%d views)", filepath, len(data))


# ---------------------------------------------------------------------------
# Core logic
# ---------------------------------------------------------------------------


def run_views(jobs: dict[str, ViewJob]) -> tuple[dict[str, list[BaseModel]], dict[str, str]]:
    """Run each view independently.

    Returns:
        (results by view name, error message by failed view name)
    """
    results: dict[str, list[BaseModel]] = {}
    failures: dict[str, str] = {}
    for view_name, job in jobs.items():
        try:
            rows = list(job())
        except Exception as e:
            logger.exception("output: view %s failed", view_name)
            failures[view_name] = f"{type(e).__name__}: {e}"
            continue
        logger.info("output: view %s → %d rows", view_name, len(rows))
        results[view_name] = rows
    return results, failures


def run_output(
    records: Sequence[BirthRecord],
    mappings: Sequence[RegionMapping] | None = None,
    run_id: str | None = None,
    reports_dir: str = REPORTS_DIR,
    percentage_name: str = PERCENTAGE_NAME,
) -> dict[str, dict]:
    """Compute every view and write one CSV per view plus a combined JSON.

    Returns:
        {view_name: {"status": "ok"|"failed", "rows": n, "file": path, "error": msg}}
    """
    if run_id is None:
        run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    if mappings is None:
        mappings = raw_region_mappings()

    jobs = build_view_jobs(records, mappings, percentage_name=percentage_name)
    results, failures = run_views({view_name: job for view_name, (job, _) in jobs.items()})

    summary: dict[str, dict] = {}
    payload: dict[str, list[dict]] = {}
    for view_name, rows in results.items():
        dict_rows = [_row_dict(r) for r in rows]
        payload[view_name] = dict_rows
        filepath = f"{reports_dir}/{view_name}_{run_id}.csv"
        fieldnames = list(jobs[view_name][1].model_fields)
        _write_csv(filepath, dict_rows, fieldnames)
        summary[view_name] = {"status": "ok", "rows": len(rows), "file": filepath}

    for view_name, error in failures.items():
        summary[view_name] = {"status": "failed", "rows": 0, "error": error}

    _write_json(f"{reports_dir}/report_{run_id}.json", payload)
    return summary


# ---------------------------------------------------------------------------
# Standalone entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    def _flag(flag: str) -> str | None:
        if flag in sys.argv:
            idx = sys.argv.index(flag)
            if idx + 1 < len(sys.argv):
                return sys.argv[idx + 1]
        return None

    loaded = run_load(input_path=_flag("--input"))
    view_summary = run_output(
        loaded,
        run_id=_flag("--run-id"),
        percentage_name=_flag("--name") or PERCENTAGE_NAME,
    )
    failed = [name for name, info in view_summary.items() if info["status"] == "failed"]
    if failed:
        logger.error("output: %d view(s) failed: %s", len(failed), ", ".join(failed))
        sys.exit(1)
    logger.info("output: done.")
