from __future__ import annotations

from typing import Dict, List, Optional

GRADE_RANKS: Dict[str, int] = {
    "PK": -1,
    "KG": 0,
    "01": 1,
    "02": 2,
    "03": 3,
    "04": 4,
    "05": 5,
    "06": 6,
    "07": 7,
    "08": 8,
    "09": 9,
    "10": 10,
    "11": 11,
    "12": 12,
    "13": 13,
}

# Grade 12 is only published at the national level; state and district
# queries for it always fail, so it is never a candidate here.
NAEP_GRADES = (4, 8)


def grade_rank(code: Optional[str]) -> Optional[int]:
    if code is None:
        return None
    key = str(code).strip().upper()
    if key.isdigit():
        key = key.zfill(2)
    return GRADE_RANKS.get(key)


def resolve_grades(grade_low: Optional[str], grade_high: Optional[str]) -> List[int]:
    """Return the NAEP grades served by a ``grade_low``-``grade_high`` span.

    An empty list means no assessment applies (missing or unknown bounds,
    or a span such as 09-12 that covers neither grade 4 nor grade 8).
    """
    low = grade_rank(grade_low)
    high = grade_rank(grade_high)
    if low is None or high is None:
        return []
    return [g for g in NAEP_GRADES if low <= g <= high]
