"""Analytical views over the validated birth records.

Every view is a pure function of the records (and, for regional views, the raw
region lookup) returning an ordered list of pydantic result rows.  Views share
no state; each builds its own aggregates from the aggregate.py primitives.

Module:     from views import top_name_by_gender, rank_delta_first_vs_last_year, ...
"""

from __future__ import annotations

import logging
from typing import Iterable, Sequence

from pydantic import BaseModel

from aggregate import decade_of, dense_rank, group_sum, keep_top, lag_by_partition, sums_to_rows
from load import BirthRecord
from regions import RegionMapping, get_state_by_code, region_lookup, unmapped_states

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Result rows
# ---------------------------------------------------------------------------


class TopNameRow(BaseModel):
    name: str
    gender: str
    num_babies: int
    popularity_rank: int


class NameTrendRow(BaseModel):
    name: str
    gender: str
    year: int
    num_babies: int
    popularity_rank: int                          # rank among that gender's names in `year`


class RankDeltaRow(BaseModel):
    name: str
    year: int                                     # the later of the two compared years
    num_babies: int
    popularity_rank: int
    previous_rank: int                            # rank in the earlier year
    diff_in_ranking: int                          # negative = rose in popularity


class TopYearRow(BaseModel):
    year: int
    gender: str
    name: str
    num_babies: int
    popularity: int


class TopDecadeRow(BaseModel):
    decade: int
    gender: str
    name: str
    num_babies: int
    popularity: int


class RegionBirthsRow(BaseModel):
    region: str | None                            # None = states with no region mapping
    num_babies: int


class TopRegionRow(BaseModel):
    region: str | None
    gender: str
    name: str
    num_babies: int
    popularity: int


class NameLengthRow(BaseModel):
    name: str
    name_length: int


class NameLengthPopularityRow(BaseModel):
    name: str
    name_length: int
    popularity: int


class StatePercentageRow(BaseModel):
    state: str
    state_name: str | None
    num_name: int
    num_babies: int
    percentage: float


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _region_sort_key(region: str | None) -> tuple[bool, str]:
    """Mapped regions alphabetically, the unmapped bucket last."""
    return (region is None, region or "")


def year_range(records: Iterable[BirthRecord]) -> tuple[int, int] | None:
    """(earliest, latest) year present, or None for no records."""
    years = {r.year for r in records}
    if not years:
        return None
    return min(years), max(years)


def _with_regions(records: Sequence[BirthRecord], mappings: Iterable[RegionMapping]) -> list[dict]:
    """Left join records → normalized regions.  Unmatched states get region None."""
    lookup = region_lookup(mappings)
    unmapped_states((r.state for r in records), lookup)
    return [
        {"region": lookup.get(r.state), "gender": r.gender, "name": r.name, "births": r.births}
        for r in records
    ]


# ---------------------------------------------------------------------------
# Rankings
# ---------------------------------------------------------------------------


def top_name_by_gender(records: Sequence[BirthRecord]) -> list[TopNameRow]:
    """The most popular name of each gender across the whole dataset.

    Names tied for first within a gender are all returned.
    """
    keys = ("name", "gender")
    rows = sums_to_rows(group_sum(records, keys), keys)
    ranks = dense_rank(rows, ("gender",), "num_babies")
    top = [TopNameRow(**row, popularity_rank=rank) for row, rank in zip(rows, ranks) if rank == 1]
    return sorted(top, key=lambda r: (r.gender, r.name))


def name_trend(records: Sequence[BirthRecord], target_name: str, target_gender: str) -> list[NameTrendRow]:
    """Year-by-year popularity rank of one name among names of one gender."""
    keys = ("name", "year")
    same_gender = (r for r in records if r.gender == target_gender)
    rows = sums_to_rows(group_sum(same_gender, keys), keys)
    ranks = dense_rank(rows, ("year",), "num_babies")
    trend = [
        NameTrendRow(**row, gender=target_gender, popularity_rank=rank)
        for row, rank in zip(rows, ranks)
        if row["name"] == target_name
    ]
    return sorted(trend, key=lambda r: r.year)


def rank_delta_first_vs_last_year(
    records: Sequence[BirthRecord],
    first_year: int | None = None,
    last_year: int | None = None,
) -> list[RankDeltaRow]:
    """Change in yearly rank between two years for names present in both.

    Years default to the earliest and latest in the data.  Output is ordered
    by diff_in_ranking ascending, so the biggest risers come first.
    """
    span = year_range(records)
    if span is None:
        return []
    first_year = span[0] if first_year is None else first_year
    last_year = span[1] if last_year is None else last_year

    keys = ("name", "year")
    rows = sums_to_rows(group_sum(records, keys), keys)
    ranks = dense_rank(rows, ("year",), "num_babies")
    ranked = [
        {**row, "popularity_rank": rank}
        for row, rank in zip(rows, ranks)
        if row["year"] in (first_year, last_year)
    ]
    previous = lag_by_partition(ranked, "name", "year", "popularity_rank")

    deltas = [
        RankDeltaRow(
            **row,
            previous_rank=prev,
            diff_in_ranking=row["popularity_rank"] - prev,
        )
        for row, prev in zip(ranked, previous)
        if prev is not None
    ]
    logger.info("views: %d names ranked in both %s and %s", len(deltas), first_year, last_year)
    return sorted(deltas, key=lambda r: (r.diff_in_ranking, r.name))


def top_n_per_year_by_gender(records: Sequence[BirthRecord], n: int = 3) -> list[TopYearRow]:
    keys = ("year", "gender", "name")
    rows = sums_to_rows(group_sum(records, keys), keys)
    ranks = dense_rank(rows, ("year", "gender"), "num_babies")
    top = [TopYearRow(**row) for row in keep_top(rows, ranks, n)]
    return sorted(top, key=lambda r: (r.year, r.gender, r.popularity, r.name))


def top_n_per_decade_by_gender(records: Sequence[BirthRecord], n: int = 3) -> list[TopDecadeRow]:
    keys = ("decade", "gender", "name")
    by_decade = (
        {"decade": decade_of(r.year), "gender": r.gender, "name": r.name, "births": r.births}
        for r in records
    )
    rows = sums_to_rows(group_sum(by_decade, keys), keys)
    ranks = dense_rank(rows, ("decade", "gender"), "num_babies")
    top = [TopDecadeRow(**row) for row in keep_top(rows, ranks, n)]
    return sorted(top, key=lambda r: (r.decade, r.gender, r.popularity, r.name))


# ---------------------------------------------------------------------------
# Regions
# ---------------------------------------------------------------------------


def distinct_regions(mappings: Iterable[RegionMapping]) -> list[str]:
    """Distinct region labels in first-seen order."""
    return list(dict.fromkeys(m.region for m in mappings))


def births_by_region(records: Sequence[BirthRecord], mappings: Iterable[RegionMapping]) -> list[RegionBirthsRow]:
    """Total births per normalized region, plus a None row for unmapped states."""
    keys = ("region",)
    rows = sums_to_rows(group_sum(_with_regions(records, mappings), keys), keys)
    result = [RegionBirthsRow(**row) for row in rows]
    return sorted(result, key=lambda r: _region_sort_key(r.region))


def top_n_per_region_by_gender(
    records: Sequence[BirthRecord],
    mappings: Iterable[RegionMapping],
    n: int = 3,
) -> list[TopRegionRow]:
    keys = ("region", "gender", "name")
    rows = sums_to_rows(group_sum(_with_regions(records, mappings), keys), keys)
    ranks = dense_rank(rows, ("region", "gender"), "num_babies")
    top = [TopRegionRow(**row) for row in keep_top(rows, ranks, n)]
    return sorted(top, key=lambda r: (*_region_sort_key(r.region), r.gender, r.popularity, r.name))


# ---------------------------------------------------------------------------
# Descriptive statistics
# ---------------------------------------------------------------------------


def name_length_extremes(
    records: Iterable[BirthRecord],
    k: int = 5,
) -> tuple[list[NameLengthRow], list[NameLengthRow]]:
    """(longest, shortest) distinct names, at most k of each.

    Equal lengths are ordered alphabetically.
    """
    names = {r.name for r in records}
    longest = sorted(names, key=lambda n: (-len(n), n))[:k]
    shortest = sorted(names, key=lambda n: (len(n), n))[:k]
    return (
        [NameLengthRow(name=n, name_length=len(n)) for n in longest],
        [NameLengthRow(name=n, name_length=len(n)) for n in shortest],
    )


def popularity_by_extreme_length(
    records: Sequence[BirthRecord],
    lengths: Iterable[int] | None = None,
) -> list[NameLengthPopularityRow]:
    """Total births of every name whose length is one of `lengths`.

    `lengths` defaults to the shortest and longest name lengths in the data.
    """
    if lengths is None:
        all_lengths = {len(r.name) for r in records}
        if not all_lengths:
            return []
        lengths = (min(all_lengths), max(all_lengths))
    targets = set(lengths)

    totals = group_sum((r for r in records if len(r.name) in targets), ("name",))
    result = [
        NameLengthPopularityRow(name=name, name_length=len(name), popularity=total)
        for (name,), total in totals.items()
    ]
    return sorted(result, key=lambda r: (-r.popularity, r.name))


def state_percentage_for_name(records: Sequence[BirthRecord], target_name: str) -> list[StatePercentageRow]:
    """Share of each state's births given `target_name`, highest first.

    States where the name never occurs are left out rather than shown as 0%.
    """
    name_totals = group_sum((r for r in records if r.name == target_name), ("state",))
    state_totals = group_sum(records, ("state",))

    result: list[StatePercentageRow] = []
    for (state,), num_name in name_totals.items():
        if num_name == 0:
            continue
        ref = get_state_by_code(state)
        num_babies = state_totals[(state,)]
        result.append(StatePercentageRow(
            state=state,
            state_name=ref["name"] if ref else None,
            num_name=num_name,
            num_babies=num_babies,
            percentage=num_name * 100 / num_babies,
        ))
    return sorted(result, key=lambda r: (-r.percentage, r.state))
