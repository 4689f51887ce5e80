"""Step 1 – Read and validate the raw baby-names file.

Standalone: python load.py [--input raw_data/names_data.csv]
Module:     from load import run_load
"""

from __future__ import annotations

import csv
import glob
import logging
import sys
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# ---------------------------------------------------------------------------
# Configuration constants (adjust as needed)
# ---------------------------------------------------------------------------

RAW_DATA_DIR: str = "raw_data"
COLUMNS: tuple[str, ...] = ("state", "gender", "year", "name", "births")
MAX_LOGGED_ERRORS: int = 20        # rows beyond this are counted, not logged

# ---------------------------------------------------------------------------
# Errors and pydantic models
# ---------------------------------------------------------------------------


class InvalidInputError(ValueError):
    """Input data breaks a record invariant; the computation must not proceed."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class RawRecord(BaseModel):
    """Structural validation only: one row straight off the file."""
    model_config = ConfigDict(strict=False)

    state: str
    gender: str
    year: int
    name: str
    births: int


class BirthRecord(BaseModel):
    """One validated (state, gender, year, name) birth count.  Immutable."""
    model_config = ConfigDict(frozen=True)

    state: str = Field(pattern=r"^[A-Z]{2}$")
    gender: Literal["M", "F"]
    year: int
    name: str = Field(min_length=1)
    births: int = Field(ge=0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

logger = logging.getLogger(__name__)


def _is_header(row: list[str]) -> bool:
    """True if the first csv row is a column header rather than data."""
    if not row or row[0].strip().lower() != "state":
        return False
    return len(row) < 3 or not row[2].strip().lstrip("-").isdigit()


def _read_csv(filepath: str) -> list[dict]:
    """Read a comma-delimited names file → rows as dicts keyed by COLUMNS.

    The original dump has no header; one is skipped when present.  A leading
    UTF-8 BOM (Excel exports) is dropped.

    Raises:
        InvalidInputError if the file is not UTF-8 or a row does not have
        exactly one cell per column.
    """
    records: list[dict] = []
    errors: list[str] = []
    try:
        with open(filepath, newline="", encoding="utf-8-sig") as fh:
            reader = csv.reader(fh)
            for i, row in enumerate(reader):
                if not row or all(not cell.strip() for cell in row):
                    continue
                if i == 0 and _is_header(row):
                    continue
                if len(row) != len(COLUMNS):
                    errors.append(f"row {len(records) + 1}: expected {len(COLUMNS)} cells, got {len(row)}")
                records.append(dict(zip(COLUMNS, row)))
    except UnicodeDecodeError as e:
        raise InvalidInputError(f"{filepath} is not valid UTF-8: {e}") from e

    if errors:
        for message in errors[:MAX_LOGGED_ERRORS]:
            logger.error("load: invalid %s", message)
        raise InvalidInputError(f"{len(errors)} rows have the wrong number of cells", errors=errors)
    return records


def _read_xlsx(filepath: str) -> list[dict]:
    """Read the first sheet of an xlsx workbook → rows as dicts keyed by COLUMNS.

    The first row must be a header naming the five columns (any case/order).
    """
    import openpyxl

    wb = openpyxl.load_workbook(filepath, read_only=True, data_only=True)
    try:
        rows_iter = wb.worksheets[0].iter_rows(values_only=True)
        first = next(rows_iter, None)
        if first is None:
            raise InvalidInputError(f"xlsx has no header row: {filepath}")
        header = [str(cell).strip().lower() if cell is not None else "" for cell in first]
        missing = [c for c in COLUMNS if c not in header]
        if missing:
            raise InvalidInputError(f"xlsx header is missing columns: {missing}")

        records: list[dict] = []
        for row in rows_iter:
            if all(cell is None for cell in row):
                continue
            record = {}
            for col_name, val in zip(header, row):
                if col_name in COLUMNS:
                    record[col_name] = val
            records.append(record)
    finally:
        wb.close()
    return records


def _find_input_file(raw_data_dir: str = RAW_DATA_DIR) -> str:
    """Glob raw_data/ for exactly one csv or xlsx.  Raises if 0 or >1 found."""
    matches = sorted(glob.glob(f"{raw_data_dir}/*.csv") + glob.glob(f"{raw_data_dir}/*.xlsx"))
    if len(matches) != 1:
        raise FileNotFoundError(
            f"Expected exactly 1 csv/xlsx in {raw_data_dir}/, found {len(matches)}: {matches}"
        )
    return matches[0]


def _clean_cell(value: object) -> object:
    if isinstance(value, str):
        return value.strip()
    # openpyxl returns floats for numeric cells
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


# ---------------------------------------------------------------------------
# Core validation logic
# ---------------------------------------------------------------------------


def _validate_row(raw_dict: dict) -> BirthRecord:
    """Validate a single raw row.  Raises ValidationError if it breaks any rule."""
    values = {k: _clean_cell(v) for k, v in raw_dict.items()}
    for key in ("state", "gender"):
        if isinstance(values.get(key), str):
            values[key] = values[key].upper()

    raw = RawRecord(**values)
    return BirthRecord(**raw.model_dump())


def validate_records(raw_records: list[dict], first_row_index: int = 1) -> list[BirthRecord]:
    """Validate every raw row.  Any invalid row fails the whole load.

    Raises:
        InvalidInputError listing one message per invalid row.
    """
    validated: list[BirthRecord] = []
    errors: list[str] = []
    for i, rec in enumerate(raw_records, start=first_row_index):
        try:
            validated.append(_validate_row(rec))
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
            )
            message = f"row {i}: {problems}"
            if len(errors) < MAX_LOGGED_ERRORS:
                logger.error("load: invalid %s", message)
            errors.append(message)

    if errors:
        raise InvalidInputError(
            f"{len(errors)} of {len(raw_records)} rows failed validation", errors=errors
        )
    return validated


# ---------------------------------------------------------------------------
# Public entry-point
# ---------------------------------------------------------------------------


def run_load(input_path: str | None = None, raw_data_dir: str = RAW_DATA_DIR) -> list[BirthRecord]:
    """Read and validate the names file.

    Returns:
        Validated BirthRecords in file order.

    Raises:
        FileNotFoundError if no single input file can be found.
        InvalidInputError if any row is invalid.
    """
    if input_path is None:
        input_path = _find_input_file(raw_data_dir)

    logger.info("load: reading %s", input_path)
    if Path(input_path).suffix.lower() == ".xlsx":
        raw_records = _read_xlsx(input_path)
        first_row_index = 2  # row 1 is header → data starts at 2
    else:
        raw_records = _read_csv(input_path)
        first_row_index = 1
    logger.info("load: %d raw rows read", len(raw_records))

    records = validate_records(raw_records, first_row_index=first_row_index)
    logger.info("load: %d rows validated", len(records))
    return records


# ---------------------------------------------------------------------------
# Standalone entry-point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    input_file = None
    if "--input" in sys.argv:
        idx = sys.argv.index("--input")
        if idx + 1 < len(sys.argv):
            input_file = sys.argv[idx + 1]
    try:
        loaded = run_load(input_path=input_file)
    except InvalidInputError as exc:
        logger.error("load: ABORTED – %s", exc)
        sys.exit(1)

    years = sorted({r.year for r in loaded})
    logger.info(
        "load: %d records, %d states, years %s–%s",
        len(loaded),
        len({r.state for r in loaded}),
        years[0] if years else "-",
        years[-1] if years else "-",
    )
