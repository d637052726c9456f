from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .schema import ScorePoint


def _to_float(val: Any) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        return 0.0


def _to_int(val: Any) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return 0


def parse_data_points(payload: Any) -> List[Dict[str, Any]]:
    """Validate a DataService payload and return its year-keyed data points.

    A non-200 ``status`` or an empty ``result`` is a failed call, not an
    empty success.
    """
    if not isinstance(payload, dict):
        raise requests.RequestException(f"Unexpected NAEP payload type: {type(payload).__name__}")
    status = payload.get("status")
    if status != 200:
        snippet = str(payload)[:200]
        raise requests.RequestException(f"API status not OK: {status} (body: {snippet})")
    result = payload.get("result") or []
    if not isinstance(result, list):
        raise requests.RequestException(f"malformed NAEP result: expected list, got {type(result).__name__}")
    if not result:
        raise requests.RequestException("no results returned from API")

    points: List[Dict[str, Any]] = []
    for row in result:
        if not isinstance(row, dict):
            raise requests.RequestException(f"malformed NAEP result row: {str(row)[:100]}")
        points.append({
            "year": _to_int(row.get("year")),
            "value": _to_float(row.get("value")),
            "error_flag": _to_int(row.get("errorFlag")),
            "jurisdiction": row.get("jurisLabel") or "",
        })
    return points


def merge_scores(
    subject: str,
    grade: int,
    jurisdiction_code: str,
    mean_points: List[Dict[str, Any]],
    proficiency_points: Optional[List[Dict[str, Any]]] = None,
) -> List[ScorePoint]:
    proficient_by_year: Dict[int, float] = {}
    for point in proficiency_points or []:
        proficient_by_year.setdefault(point["year"], point["value"])

    scores: List[ScorePoint] = []
    for point in mean_points:
        scores.append(ScorePoint(
            subject=subject,
            grade=grade,
            year=point["year"],
            jurisdiction=point["jurisdiction"],
            jurisdiction_code=jurisdiction_code,
            mean_score=point["value"],
            at_or_above_proficient=proficient_by_year.get(point["year"]),
            error_flag=point["error_flag"],
        ))
    return scores
