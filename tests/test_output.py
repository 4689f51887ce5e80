"""Tests for output.py and main.py – report files, view isolation, manifest."""

import csv
import json
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import main as main_module  # noqa: E402
import output as output_module  # noqa: E402
import views  # noqa: E402
from conftest import rec  # noqa: E402
from regions import raw_region_mappings  # noqa: E402
from views import RegionBirthsRow  # noqa: E402

EXPECTED_VIEWS = {
    "top_name_by_gender",
    "name_trend_michael_m",
    "name_trend_jessica_f",
    "rank_delta",
    "top_per_year",
    "top_per_decade",
    "births_by_region",
    "top_per_region",
    "longest_names",
    "shortest_names",
    "extreme_length_popularity",
    "state_percentage_marina",
}


def _read_csv(path: str) -> list[dict]:
    with open(path, newline="") as fh:
        return list(csv.DictReader(fh))


# ---------------------------------------------------------------------------
# View registry
# ---------------------------------------------------------------------------


class TestBuildViewJobs:
    def test_all_views_registered(self, sample_records):
        jobs = output_module.build_view_jobs(sample_records, raw_region_mappings())
        assert set(jobs) == EXPECTED_VIEWS

    def test_percentage_name_in_view_name(self, sample_records):
        jobs = output_module.build_view_jobs(sample_records, raw_region_mappings(), percentage_name="John")
        assert "state_percentage_john" in jobs
        assert [r.state for r in jobs["state_percentage_john"][0]()] == ["MI", "NY", "CA"]

    def test_trend_jobs_bind_their_own_name(self, sample_records):
        jobs = output_module.build_view_jobs(sample_records, raw_region_mappings())
        assert {r.name for r in jobs["name_trend_michael_m"][0]()} == {"Michael"}
        assert {r.name for r in jobs["name_trend_jessica_f"][0]()} == {"Jessica"}

    def test_each_job_paired_with_row_model(self, sample_records):
        jobs = output_module.build_view_jobs(sample_records, raw_region_mappings())
        assert jobs["rank_delta"][1] is views.RankDeltaRow
        assert jobs["state_percentage_marina"][1] is views.StatePercentageRow
        for view_name, (job, model) in jobs.items():
            assert all(isinstance(row, model) for row in job()), view_name


# ---------------------------------------------------------------------------
# Row rendering
# ---------------------------------------------------------------------------


class TestRowDict:
    def test_unmapped_region_label(self):
        assert output_module._row_dict(RegionBirthsRow(region=None, num_babies=5)) == {
            "region": "unmapped",
            "num_babies": 5,
        }

    def test_mapped_region_unchanged(self):
        assert output_module._row_dict(RegionBirthsRow(region="South", num_babies=5))["region"] == "South"


# ---------------------------------------------------------------------------
# run_views / run_output
# ---------------------------------------------------------------------------


class TestRunViews:
    def test_failure_isolated(self):
        def boom():
            raise ValueError("bad view")

        results, failures = output_module.run_views({"ok": lambda: [], "broken": boom})
        assert results == {"ok": []}
        assert failures == {"broken": "ValueError: bad view"}


class TestRunOutput:
    def test_writes_csv_per_view_and_json(self, sample_records, tmp_pipeline):
        summary = output_module.run_output(sample_records, run_id="t1", reports_dir=tmp_pipeline["reports"])
        assert set(summary) == EXPECTED_VIEWS
        assert all(info["status"] == "ok" for info in summary.values())

        region_rows = _read_csv(summary["births_by_region"]["file"])
        assert region_rows[-1] == {"region": "unmapped", "num_babies": "25"}

        payload = json.loads((Path(tmp_pipeline["reports"]) / "report_t1.json").read_text())
        assert set(payload) == EXPECTED_VIEWS
        assert payload["top_name_by_gender"][0]["name"] == "Jessica"

    def test_csv_header_matches_model_fields(self, sample_records, tmp_pipeline):
        summary = output_module.run_output(sample_records, run_id="t2", reports_dir=tmp_pipeline["reports"])
        with open(summary["rank_delta"]["file"], newline="") as fh:
            header = next(csv.reader(fh))
        assert header == ["name", "year", "num_babies", "popularity_rank", "previous_rank", "diff_in_ranking"]

    def test_empty_view_still_has_header(self, tmp_pipeline):
        summary = output_module.run_output(
            [rec("CA", "F", 1990, "Ann", 5)], run_id="t4", reports_dir=tmp_pipeline["reports"]
        )
        info = summary["state_percentage_marina"]
        assert info["rows"] == 0
        text = Path(info["file"]).read_text()
        assert text.startswith("state,state_name,")
        assert _read_csv(info["file"]) == []

    def test_failing_view_does_not_stop_others(self, sample_records, tmp_pipeline, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("region join exploded")

        monkeypatch.setattr(views, "births_by_region", boom)
        summary = output_module.run_output(sample_records, run_id="t3", reports_dir=tmp_pipeline["reports"])
        assert summary["births_by_region"]["status"] == "failed"
        assert "region join exploded" in summary["births_by_region"]["error"]
        assert summary["top_per_region"]["status"] == "ok"
        assert not (Path(tmp_pipeline["reports"]) / "births_by_region_t3.csv").exists()


# ---------------------------------------------------------------------------
# main – end to end
# ---------------------------------------------------------------------------


def _run_main(argv: list[str], tmp_pipeline: dict[str, str]) -> dict:
    main_module.main(
        argv,
        pipeline_state_dir=tmp_pipeline["pipeline_state"],
        reports_dir=tmp_pipeline["reports"],
        raw_data_dir=tmp_pipeline["raw_data"],
    )
    return json.loads((Path(tmp_pipeline["pipeline_state"]) / "run_manifest.json").read_text())


class TestMain:
    def test_completed_run(self, sample_csv, tmp_pipeline):
        manifest = _run_main(["--input", str(sample_csv), "--run-id", "e2e"], tmp_pipeline)
        assert manifest["status"] == "completed"
        assert manifest["steps_completed"] == ["load", "output"]
        assert manifest["rows_loaded"] == 15
        assert manifest["states_with_data"] == 4
        assert manifest["year_range"] == [1980, 2009]
        assert "New England" in manifest["raw_regions"]
        assert sorted(manifest["clean_regions"]) == sorted(
            ["South", "Pacific", "Mountain", "New_England", "Mid_Atlantic", "Midwest"]
        )
        assert manifest["region_state_counts"]["Midwest"] == 12
        assert manifest["region_state_counts"]["New_England"] == 6
        assert sum(manifest["region_state_counts"].values()) == 51
        assert (Path(tmp_pipeline["reports"]) / "top_per_year_e2e.csv").exists()

    def test_name_flag(self, sample_csv, tmp_pipeline):
        manifest = _run_main(["--input", str(sample_csv), "--run-id", "n1", "--name", "Emma"], tmp_pipeline)
        assert manifest["views"]["state_percentage_emma"]["rows"] == 2

    def test_input_discovered_in_raw_data(self, sample_csv, tmp_pipeline):
        (Path(tmp_pipeline["raw_data"]) / "names_data.csv").write_text(sample_csv.read_text())
        manifest = _run_main(["--run-id", "d1"], tmp_pipeline)
        assert manifest["rows_loaded"] == 15

    def test_invalid_input_aborts(self, tmp_path, tmp_pipeline):
        bad = tmp_path / "bad.csv"
        bad.write_text("CA,F,1990,Marina,10\nCA,X,1990,Ann,90\n")
        with pytest.raises(SystemExit) as exc_info:
            _run_main(["--input", str(bad), "--run-id", "bad"], tmp_pipeline)
        assert exc_info.value.code == 1
        manifest = json.loads((Path(tmp_pipeline["pipeline_state"]) / "run_manifest.json").read_text())
        assert manifest["status"] == "ABORTED"
        assert "failed validation" in manifest["abort_reason"]

    def test_empty_xlsx_aborts(self, tmp_path, tmp_pipeline):
        import openpyxl

        path = tmp_path / "empty.xlsx"
        openpyxl.Workbook().save(path)
        with pytest.raises(SystemExit) as exc_info:
            _run_main(["--input", str(path), "--run-id", "x0"], tmp_pipeline)
        assert exc_info.value.code == 1
        manifest = json.loads((Path(tmp_pipeline["pipeline_state"]) / "run_manifest.json").read_text())
        assert manifest["status"] == "ABORTED"
        assert "no header row" in manifest["abort_reason"] or "missing columns" in manifest["abort_reason"]

    def test_non_utf8_csv_aborts(self, tmp_path, tmp_pipeline):
        path = tmp_path / "latin1.csv"
        path.write_bytes(b"CA,F,1990,Ren\xe9e,10\n")
        with pytest.raises(SystemExit) as exc_info:
            _run_main(["--input", str(path), "--run-id", "u0"], tmp_pipeline)
        assert exc_info.value.code == 1
        manifest = json.loads((Path(tmp_pipeline["pipeline_state"]) / "run_manifest.json").read_text())
        assert manifest["status"] == "ABORTED"
        assert "not valid UTF-8" in manifest["abort_reason"]

    def test_failed_view_exits_nonzero(self, sample_csv, tmp_pipeline, monkeypatch):
        def boom(*args, **kwargs):
            raise RuntimeError("nope")

        monkeypatch.setattr(views, "top_name_by_gender", boom)
        with pytest.raises(SystemExit) as exc_info:
            _run_main(["--input", str(sample_csv), "--run-id", "f1"], tmp_pipeline)
        assert exc_info.value.code == 1
        manifest = json.loads((Path(tmp_pipeline["pipeline_state"]) / "run_manifest.json").read_text())
        assert manifest["status"] == "completed_with_errors"
        assert manifest["views"]["rank_delta"]["status"] == "ok"
