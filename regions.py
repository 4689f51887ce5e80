"""Static state → region reference data and region-label normalization.

The raw lookup below is the list shipped with the names dataset. It labels
New Hampshire "New England" (every other state in that region uses the
underscore form) and leaves Michigan out entirely; normalize_regions() repairs
both before any join against the names table.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from pydantic import BaseModel, ConfigDict

from load import InvalidInputError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Region reference data
# ---------------------------------------------------------------------------
# Fields:
#   name       – canonical full name (title case)
#   usps_code  – 2-letter USPS postal code
#   region     – region label as delivered in the raw lookup
# ---------------------------------------------------------------------------

STATES: list[dict] = [
    {"name": "Alabama",              "usps_code": "AL", "region": "South"},
    {"name": "Alaska",               "usps_code": "AK", "region": "Pacific"},
    {"name": "Arizona",              "usps_code": "AZ", "region": "Mountain"},
    {"name": "Arkansas",             "usps_code": "AR", "region": "South"},
    {"name": "California",           "usps_code": "CA", "region": "Pacific"},
    {"name": "Colorado",             "usps_code": "CO", "region": "Mountain"},
    {"name": "Connecticut",          "usps_code": "CT", "region": "New_England"},
    {"name": "District of Columbia", "usps_code": "DC", "region": "Mid_Atlantic"},
    {"name": "Delaware",             "usps_code": "DE", "region": "South"},
    {"name": "Florida",              "usps_code": "FL", "region": "South"},
    {"name": "Georgia",              "usps_code": "GA", "region": "South"},
    {"name": "Hawaii",               "usps_code": "HI", "region": "Pacific"},
    {"name": "Idaho",                "usps_code": "ID", "region": "Mountain"},
    {"name": "Illinois",             "usps_code": "IL", "region": "Midwest"},
    {"name": "Indiana",              "usps_code": "IN", "region": "Midwest"},
    {"name": "Iowa",                 "usps_code": "IA", "region": "Midwest"},
    {"name": "Kansas",               "usps_code": "KS", "region": "Midwest"},
    {"name": "Kentucky",             "usps_code": "KY", "region": "South"},
    {"name": "Louisiana",            "usps_code": "LA", "region": "South"},
    {"name": "Maine",                "usps_code": "ME", "region": "New_England"},
    {"name": "Maryland",             "usps_code": "MD", "region": "South"},
    {"name": "Massachusetts",        "usps_code": "MA", "region": "New_England"},
    {"name": "Minnesota",            "usps_code": "MN", "region": "Midwest"},
    {"name": "Mississippi",          "usps_code": "MS", "region": "South"},
    {"name": "Missouri",             "usps_code": "MO", "region": "Midwest"},
    {"name": "Montana",              "usps_code": "MT", "region": "Mountain"},
    {"name": "Nebraska",             "usps_code": "NE", "region": "Midwest"},
    {"name": "Nevada",               "usps_code": "NV", "region": "Mountain"},
    {"name": "New Hampshire",        "usps_code": "NH", "region": "New England"},
    {"name": "New Jersey",           "usps_code": "NJ", "region": "Mid_Atlantic"},
    {"name": "New Mexico",           "usps_code": "NM", "region": "Mountain"},
    {"name": "New York",             "usps_code": "NY", "region": "Mid_Atlantic"},
    {"name": "North Carolina",       "usps_code": "NC", "region": "South"},
    {"name": "North Dakota",         "usps_code": "ND", "region": "Midwest"},
    {"name": "Ohio",                 "usps_code": "OH", "region": "Midwest"},
    {"name": "Oklahoma",             "usps_code": "OK", "region": "South"},
    {"name": "Oregon",               "usps_code": "OR", "region": "Pacific"},
    {"name": "Pennsylvania",         "usps_code": "PA", "region": "Mid_Atlantic"},
    {"name": "Rhode Island",         "usps_code": "RI", "region": "New_England"},
    {"name": "South Carolina",       "usps_code": "SC", "region": "South"},
    {"name": "South Dakota",         "usps_code": "SD", "region": "Midwest"},
    {"name": "Tennessee",            "usps_code": "TN", "region": "South"},
    {"name": "Texas",                "usps_code": "TX", "region": "South"},
    {"name": "Utah",                 "usps_code": "UT", "region": "Mountain"},
    {"name": "Vermont",              "usps_code": "VT", "region": "New_England"},
    {"name": "Virginia",             "usps_code": "VA", "region": "South"},
    {"name": "Washington",           "usps_code": "WA", "region": "Pacific"},
    {"name": "West Virginia",        "usps_code": "WV", "region": "South"},
    {"name": "Wisconsin",            "usps_code": "WI", "region": "Midwest"},
    {"name": "Wyoming",              "usps_code": "WY", "region": "Mountain"},
]

CANONICAL_REGIONS: tuple[str, ...] = (
    "South", "Pacific", "Mountain", "New_England", "Mid_Atlantic", "Midwest",
)

# Label rewrites applied to every raw mapping.
_LABEL_FIXES: dict[str, str] = {"New England": "New_England"}

# Mappings missing from the raw lookup; these win over any raw entry.
_SYNTHETIC: dict[str, str] = {"MI": "Midwest"}


class RegionMapping(BaseModel):
    """One state → region row of the lookup table."""
    model_config = ConfigDict(frozen=True)

    state: str
    region: str


# ---------------------------------------------------------------------------
# Lookup helpers
# ---------------------------------------------------------------------------

_BY_CODE: dict[str, dict] = {s["usps_code"].upper(): s for s in STATES}


def get_state_by_code(code: str) -> dict | None:
    """Look up a state by 2-letter USPS code (case-insensitive)."""
    return _BY_CODE.get(code.upper())


def raw_region_mappings() -> list[RegionMapping]:
    """The region lookup exactly as delivered (no Michigan, one 'New England')."""
    return [RegionMapping(state=s["usps_code"], region=s["region"]) for s in STATES]


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


def normalize_regions(mappings: Iterable[RegionMapping]) -> list[RegionMapping]:
    """Canonicalize region labels and add the mappings the raw lookup omits.

    Idempotent: already-canonical input comes back unchanged. Identical
    duplicate rows collapse to one; the synthetic Michigan row replaces any
    raw MI row.

    Raises:
        InvalidInputError if one state is mapped to two different regions,
        since joining on such a table would double-count its births.
    """
    seen: dict[str, RegionMapping] = {}
    conflicts: list[str] = []
    for m in mappings:
        if m.state in _SYNTHETIC:
            continue
        fixed = RegionMapping(state=m.state, region=_LABEL_FIXES.get(m.region, m.region))
        prior = seen.get(fixed.state)
        if prior is None:
            seen[fixed.state] = fixed
        elif prior.region != fixed.region:
            conflicts.append(f"{fixed.state}: '{prior.region}' vs '{fixed.region}'")

    if conflicts:
        raise InvalidInputError(
            f"{len(conflicts)} state(s) mapped to more than one region", errors=conflicts
        )

    result = list(seen.values())
    result.extend(RegionMapping(state=code, region=region) for code, region in _SYNTHETIC.items())
    return result


def region_lookup(mappings: Iterable[RegionMapping]) -> dict[str, str]:
    """Normalized mappings as a {state_code: region} dict for joining."""
    return {m.state: m.region for m in normalize_regions(mappings)}


def unmapped_states(state_codes: Iterable[str], lookup: dict[str, str]) -> list[str]:
    """State codes that have no region in `lookup` (sorted, deduplicated)."""
    missing = sorted({code for code in state_codes if code not in lookup})
    if missing:
        logger.warning("regions: %d state(s) have no region mapping: %s", len(missing), ", ".join(missing))
    return missing


# ---------------------------------------------------------------------------
# Derived constants, computed once at import time
# ---------------------------------------------------------------------------

REGION_STATE_COUNTS: dict[str, int] = dict(Counter(region_lookup(raw_region_mappings()).values()))
