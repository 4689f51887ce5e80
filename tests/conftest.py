"""Shared fixtures for pipeline tests."""

import sys
from pathlib import Path

import pytest

# Ensure repo root is on sys.path so imports like `import views` work
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from load import BirthRecord  # noqa: E402

# (state, gender, year, name, births).  PR has no region mapping; MI relies on
# the synthetic Midwest row.
SAMPLE_ROWS: list[tuple[str, str, int, str, int]] = [
    ("CA", "F", 1980, "Jessica", 50),
    ("CA", "F", 1980, "Jennifer", 60),
    ("CA", "F", 1980, "Marina", 10),
    ("CA", "M", 1980, "Michael", 100),
    ("CA", "M", 1980, "John", 40),
    ("NY", "F", 1980, "Jessica", 30),
    ("NY", "M", 1980, "Michael", 20),
    ("NY", "M", 1980, "John", 20),
    ("PR", "M", 1995, "Luis", 25),
    ("MI", "M", 2009, "John", 70),
    ("CA", "M", 2009, "Michael", 30),
    ("CA", "F", 2009, "Jessica", 20),
    ("CA", "F", 2009, "Emma", 40),
    ("NY", "F", 2009, "Marina", 5),
    ("NY", "F", 2009, "Emma", 15),
]


def rec(state: str, gender: str, year: int, name: str, births: int) -> BirthRecord:
    return BirthRecord(state=state, gender=gender, year=year, name=name, births=births)


@pytest.fixture
def sample_records() -> list[BirthRecord]:
    """Fifteen records over three years, four states and both genders."""
    return [rec(*row) for row in SAMPLE_ROWS]


@pytest.fixture
def sample_csv(tmp_path: Path) -> Path:
    """SAMPLE_ROWS as a header-less csv, like the original names dump."""
    path = tmp_path / "names_data.csv"
    path.write_text("".join(f"{s},{g},{y},{n},{b}\n" for s, g, y, n, b in SAMPLE_ROWS))
    return path


@pytest.fixture
def tmp_pipeline(tmp_path: Path) -> dict[str, str]:
    """Return paths for a temporary pipeline layout."""
    dirs = {
        "raw_data": str(tmp_path / "raw_data"),
        "reports": str(tmp_path / "reports"),
        "pipeline_state": str(tmp_path / ".pipeline_state"),
    }
    for d in dirs.values():
        Path(d).mkdir(parents=True, exist_ok=True)
    return dirs
