"""Pipeline orchestrator – runs load → views/output end-to-end.

Usage: uv run python main.py [--input PATH] [--run-id ID] [--name NAME]
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from pathlib import Path

import load as load_module
import output as output_module
import regions as regions_module
import views as views_module

logger = logging.getLogger(__name__)

PIPELINE_STATE_DIR = ".pipeline_state"


def _write_manifest(data: dict, pipeline_state_dir: str = PIPELINE_STATE_DIR) -> None:
    Path(pipeline_state_dir).mkdir(parents=True, exist_ok=True)
    path = Path(pipeline_state_dir) / "run_manifest.json"
    path.write_text(json.dumps(data, indent=2))


def _flag(argv: list[str], flag: str) -> str | None:
    if flag in argv:
        idx = argv.index(flag)
        if idx + 1 < len(argv):
            return argv[idx + 1]
    return None


def main(
    argv: list[str] | None = None,
    pipeline_state_dir: str = PIPELINE_STATE_DIR,
    reports_dir: str = output_module.REPORTS_DIR,
    raw_data_dir: str = load_module.RAW_DATA_DIR,
) -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    if argv is None:
        argv = sys.argv[1:]

    run_id = _flag(argv, "--run-id") or datetime.now().strftime("%Y%m%d_%H%M%S")
    percentage_name = _flag(argv, "--name") or output_module.PERCENTAGE_NAME
    logger.info("=== pipeline start  run_id=%s ===", run_id)

    # --- initial manifest ---
    manifest: dict = {
        "run_id": run_id,
        "started_at": datetime.now().isoformat(),
        "status": "started",
        "steps_completed": [],
        "input_file": _flag(argv, "--input"),
        "rows_loaded": None,
        "states_with_data": None,
        "year_range": None,
        "raw_regions": None,
        "clean_regions": None,
        "region_state_counts": None,
        "views": {},
        "abort_reason": None,
    }
    _write_manifest(manifest, pipeline_state_dir)

    # -----------------------------------------------------------------------
    # Step 1 – load
    # -----------------------------------------------------------------------
    manifest["status"] = "loading"
    _write_manifest(manifest, pipeline_state_dir)

    try:
        records = load_module.run_load(input_path=manifest["input_file"], raw_data_dir=raw_data_dir)
    except (FileNotFoundError, load_module.InvalidInputError) as e:
        manifest["status"] = "ABORTED"
        manifest["abort_reason"] = str(e)
        _write_manifest(manifest, pipeline_state_dir)
        logger.error("=== pipeline ABORTED: %s ===", e)
        sys.exit(1)

    manifest["steps_completed"].append("load")
    manifest["rows_loaded"] = len(records)
    manifest["states_with_data"] = len({r.state for r in records})
    manifest["year_range"] = views_module.year_range(records)

    mappings = regions_module.raw_region_mappings()
    manifest["raw_regions"] = views_module.distinct_regions(mappings)
    manifest["clean_regions"] = views_module.distinct_regions(regions_module.normalize_regions(mappings))
    manifest["region_state_counts"] = regions_module.REGION_STATE_COUNTS

    # -----------------------------------------------------------------------
    # Step 2 – views + output
    # -----------------------------------------------------------------------
    manifest["status"] = "outputting"
    _write_manifest(manifest, pipeline_state_dir)

    view_summary = output_module.run_output(
        records,
        mappings=mappings,
        run_id=run_id,
        reports_dir=reports_dir,
        percentage_name=percentage_name,
    )
    manifest["views"] = view_summary
    manifest["steps_completed"].append("output")

    failed = [name for name, info in view_summary.items() if info["status"] == "failed"]
    if failed:
        manifest["status"] = "completed_with_errors"
        _write_manifest(manifest, pipeline_state_dir)
        logger.error("=== pipeline finished with %d failed view(s): %s ===", len(failed), ", ".join(failed))
        sys.exit(1)

    manifest["status"] = "completed"
    manifest["finished_at"] = datetime.now().isoformat()
    _write_manifest(manifest, pipeline_state_dir)

    logger.info("=== pipeline complete  run_id=%s ===", run_id)


if __name__ == "__main__":
    main()
