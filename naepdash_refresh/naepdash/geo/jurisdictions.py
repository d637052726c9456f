from __future__ import annotations

from typing import Dict, Optional

NATIONAL_PUBLIC = "NP"

# NAEP Trial Urban District Assessment participants, keyed by the lowercase
# name fragment expected in a district's free-text name.
LARGE_CITY_DISTRICTS: Dict[str, str] = {
    "albuquerque": "XQ",
    "atlanta": "XA",
    "austin": "XU",
    "baltimore city": "XM",
    "boston": "XB",
    "charlotte": "XT",
    "chicago": "XC",
    "clark county": "XX",
    "cleveland": "XV",
    "dallas": "XS",
    "denver": "XY",
    "detroit": "XR",
    "district of columbia": "XW",
    "duval county": "XE",
    "fort worth": "XZ",
    "fresno": "XF",
    "guilford county": "XG",
    "hillsborough county": "XO",
    "houston": "XH",
    "jefferson county": "XJ",
    "los angeles": "XL",
    "miami-dade": "XI",
    "milwaukee": "XK",
    "new york city": "XN",
    "philadelphia": "XP",
    "san diego": "XD",
    "shelby county": "YA",
}


def normalize_district_name(name: Optional[str]) -> str:
    if not name:
        return ""
    return str(name).strip().lower()


def resolve_jurisdiction(district_name: Optional[str]) -> Optional[str]:
    """Map a district name to a large-city NAEP jurisdiction code.

    Exact matches win; otherwise the first table key (alphabetical order)
    contained in the name is used. Returns None when nothing matches.
    """
    name = normalize_district_name(district_name)
    if not name:
        return None
    if name in LARGE_CITY_DISTRICTS:
        return LARGE_CITY_DISTRICTS[name]
    for key, code in LARGE_CITY_DISTRICTS.items():
        if key in name:
            return code
    return None
