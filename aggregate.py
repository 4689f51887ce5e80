"""Aggregation primitives shared by every analytical view.

Each helper is a plain function over plain inputs so views can compose them:
group_sum → rows → dense_rank / lag_by_partition → filter.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Iterable, Sequence

from load import InvalidInputError

logger = logging.getLogger(__name__)


def _get(row: Any, field: str) -> Any:
    if isinstance(row, dict):
        return row[field]
    return getattr(row, field)


def decade_of(year: int) -> int:
    """1987 → 1980.  Floors toward negative infinity like FLOOR(year/10)*10."""
    return (year // 10) * 10


# ---------------------------------------------------------------------------
# Group-by sum
# ---------------------------------------------------------------------------


def group_sum(
    records: Iterable[Any],
    key_fields: Sequence[str],
    value_field: str = "births",
) -> dict[tuple, int]:
    """Total `value_field` per distinct combination of `key_fields`.

    Records may be dicts or objects with attributes.  Key order in the result
    follows first appearance.

    Raises:
        InvalidInputError on a negative value; a sum over it would corrupt
        every ranking built on top.
    """
    totals: dict[tuple, int] = defaultdict(int)
    for record in records:
        value = _get(record, value_field)
        if value < 0:
            raise InvalidInputError(f"negative {value_field} ({value}) for {record!r}")
        totals[tuple(_get(record, f) for f in key_fields)] += value
    return dict(totals)


def sums_to_rows(totals: dict[tuple, int], key_fields: Sequence[str], total_field: str = "num_babies") -> list[dict]:
    """{(k1, k2): n} → [{key_fields[0]: k1, key_fields[1]: k2, total_field: n}]."""
    return [{**dict(zip(key_fields, key)), total_field: total} for key, total in totals.items()]


# ---------------------------------------------------------------------------
# Window functions
# ---------------------------------------------------------------------------


def _partitions(rows: Sequence[Any], partition_fields: Sequence[str]) -> dict[tuple, list[int]]:
    """Partition key → indexes of the rows in that partition."""
    groups: dict[tuple, list[int]] = defaultdict(list)
    for i, row in enumerate(rows):
        groups[tuple(_get(row, f) for f in partition_fields)].append(i)
    return groups


def dense_rank(
    rows: Sequence[Any],
    partition_fields: Sequence[str],
    order_field: str,
    descending: bool = True,
) -> list[int]:
    """Dense rank (1,1,2 style) of each row within its partition.

    Equal `order_field` values share a rank and the next distinct value gets
    the next integer, so a partition with k distinct values uses exactly the
    ranks 1..k.  Returns one rank per input row, in input order.
    """
    ranks = [0] * len(rows)
    for indexes in _partitions(rows, partition_fields).values():
        distinct = sorted({_get(rows[i], order_field) for i in indexes}, reverse=descending)
        position = {value: rank for rank, value in enumerate(distinct, start=1)}
        for i in indexes:
            ranks[i] = position[_get(rows[i], order_field)]
    return ranks


def lag_by_partition(
    rows: Sequence[Any],
    partition_field: str,
    order_field: str,
    target_field: str,
) -> list[Any | None]:
    """Previous row's `target_field` within each partition, ordered by `order_field`.

    The first row of each partition gets None.  Returns one value per input
    row, in input order.
    """
    lagged: list[Any | None] = [None] * len(rows)
    for indexes in _partitions(rows, (partition_field,)).values():
        ordered = sorted(indexes, key=lambda i: _get(rows[i], order_field))
        for prev_i, i in zip(ordered, ordered[1:]):
            lagged[i] = _get(rows[prev_i], target_field)
    return lagged


def keep_top(rows: list[dict], ranks: list[int], n: int, rank_field: str = "popularity") -> list[dict]:
    """Attach ranks to rows and keep those with rank < n + 1."""
    return [{**row, rank_field: rank} for row, rank in zip(rows, ranks) if rank < n + 1]
