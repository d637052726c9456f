from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Dict, List, Sequence, Tuple

import requests

from naepdash.errors import AssessmentFetchError
from naepdash.io.http import get_json
from .parse import merge_scores, parse_data_points
from .schema import STAT_AT_OR_ABOVE_PROFICIENT, STAT_MEAN, SUBJECTS, ScorePoint

logger = logging.getLogger(__name__)


def naep_params(
    subject: str,
    grade: int,
    jurisdiction: str,
    stattype: str,
    years: Sequence[int],
) -> Dict[str, str]:
    subject_code, subscale = SUBJECTS[subject]
    return {
        "type": "data",
        "subject": subject_code,
        "grade": str(grade),
        "subscale": subscale,
        "variable": "TOTAL",
        "jurisdiction": jurisdiction,
        "stattype": stattype,
        "Year": ",".join(str(y) for y in years),
    }


def fetch_data_points(cfg: Dict[str, Any], session: requests.Session, params: Dict[str, str]) -> List[Dict[str, Any]]:
    naep_cfg = cfg["naep"]
    try:
        payload = get_json(naep_cfg["base_url"], params=params, session=session, timeout=naep_cfg["timeout_seconds"])
    except ValueError as exc:
        raise requests.RequestException(f"Invalid JSON response from NAEP API: {exc}") from exc
    return parse_data_points(payload)


def fetch_subject_scores(
    cfg: Dict[str, Any],
    session: requests.Session,
    jurisdiction: str,
    subject: str,
    grade: int,
) -> List[ScorePoint]:
    """Fetch one (jurisdiction, subject, grade) cell across the candidate years.

    The mean-score request must succeed; the at-or-above-proficient request
    is best-effort and only fills in ``at_or_above_proficient`` where a year
    lines up.
    """
    years = cfg["naep"]["years"]
    mean_params = naep_params(subject, grade, jurisdiction, STAT_MEAN, years)
    mean_points = fetch_data_points(cfg, session, mean_params)

    proficiency_points: List[Dict[str, Any]] = []
    alc_params = naep_params(subject, grade, jurisdiction, STAT_AT_OR_ABOVE_PROFICIENT, years)
    try:
        proficiency_points = fetch_data_points(cfg, session, alc_params)
    except requests.RequestException as exc:
        logger.warning("Proficiency series unavailable for %s %s grade %s: %s", jurisdiction, subject, grade, exc)

    return merge_scores(subject, grade, jurisdiction, mean_points, proficiency_points)


def _cells(grades: Sequence[int]) -> List[Tuple[str, int]]:
    return [(subject, grade) for subject in SUBJECTS for grade in grades]


def fetch_scores_for_jurisdiction(
    cfg: Dict[str, Any],
    session: requests.Session,
    jurisdiction: str,
    grades: Sequence[int],
) -> List[ScorePoint]:
    """Sweep every subject x grade cell for one jurisdiction.

    Failed cells are collected and skipped. The sweep raises
    AssessmentFetchError only when cells were attempted and none produced
    a score.
    """
    cells = _cells(grades)
    if not cells:
        return []

    results: Dict[Tuple[str, int], List[ScorePoint]] = {}
    errors: Dict[Tuple[str, int], str] = {}
    max_workers = max(1, min(int(cfg["naep"]["max_workers"]), len(cells)))
    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {
            pool.submit(fetch_subject_scores, cfg, session, jurisdiction, subject, grade): (subject, grade)
            for subject, grade in cells
        }
        for future in as_completed(futures):
            subject, grade = futures[future]
            try:
                results[(subject, grade)] = future.result()
            except requests.RequestException as exc:
                logger.warning("NAEP request failed for %s %s grade %s: %s", jurisdiction, subject, grade, exc)
                errors[(subject, grade)] = f"{subject} grade {grade}: {exc}"

    scores: List[ScorePoint] = []
    for cell in cells:
        scores.extend(results.get(cell, []))

    if scores:
        if errors:
            logger.info("%s: %d of %d cells failed; keeping partial coverage", jurisdiction, len(errors), len(cells))
        return scores
    if errors:
        messages = [errors[cell] for cell in cells if cell in errors]
        raise AssessmentFetchError(f"all requests failed: {'; '.join(messages)}")
    return scores
