from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence, Tuple

import requests

from naepdash.datasets.naep.fetch import fetch_scores_for_jurisdiction
from naepdash.datasets.naep.schema import AssessmentRecord, ScorePoint
from naepdash.entity.descriptor import EntityDescriptor
from naepdash.entity.grades import resolve_grades
from naepdash.errors import AssessmentFetchError, NoApplicableGradesError
from naepdash.geo.jurisdictions import NATIONAL_PUBLIC, resolve_jurisdiction
from naepdash.io.cache import load_assessment, save_assessment, utc_now
from naepdash.io.http import build_session

logger = logging.getLogger(__name__)

_entity_locks: Dict[str, threading.Lock] = {}
_entity_lock_users: Dict[str, int] = {}
_entity_locks_guard = threading.Lock()


@contextmanager
def _entity_lock(entity_id: str) -> Iterator[None]:
    """Serialize callers for one entity; the lock is dropped once unused."""
    with _entity_locks_guard:
        lock = _entity_locks.get(entity_id)
        if lock is None:
            lock = threading.Lock()
            _entity_locks[entity_id] = lock
        _entity_lock_users[entity_id] = _entity_lock_users.get(entity_id, 0) + 1
    try:
        with lock:
            yield
    finally:
        with _entity_locks_guard:
            _entity_lock_users[entity_id] -= 1
            if not _entity_lock_users[entity_id]:
                del _entity_lock_users[entity_id]
                del _entity_locks[entity_id]


def _optional_sweep(
    cfg: Dict[str, Any],
    session: requests.Session,
    jurisdiction: str,
    grades: Sequence[int],
) -> Tuple[ScorePoint, ...]:
    try:
        return tuple(fetch_scores_for_jurisdiction(cfg, session, jurisdiction, grades))
    except AssessmentFetchError as exc:
        logger.info("No NAEP data for optional jurisdiction %s: %s", jurisdiction, exc)
        return ()


def build_record(
    cfg: Dict[str, Any],
    entity: EntityDescriptor,
    session: Optional[requests.Session] = None,
) -> AssessmentRecord:
    grades = resolve_grades(entity.grade_low, entity.grade_high)
    if not grades:
        raise NoApplicableGradesError(
            f"no NAEP grades applicable for {entity.entity_id} "
            f"(grade range: {entity.grade_low or '?'}-{entity.grade_high or '?'})"
        )

    naep_cfg = cfg["naep"]
    session = session or build_session(retries=naep_cfg["retries"])
    extracted_at = utc_now()

    try:
        state_scores = fetch_scores_for_jurisdiction(cfg, session, entity.state_code, grades)
    except AssessmentFetchError as exc:
        raise AssessmentFetchError(f"failed to fetch state scores for {entity.state_code}: {exc}") from exc
    if not state_scores:
        raise AssessmentFetchError(
            f"no NAEP data available for state {entity.state_code}, grades {grades}, years {naep_cfg['years']}"
        )

    district_name = None
    district_scores: Tuple[ScorePoint, ...] = ()
    district_code = resolve_jurisdiction(entity.district_name)
    if district_code:
        district_scores = _optional_sweep(cfg, session, district_code, grades)
        if district_scores:
            district_name = entity.district_name

    national_scores: Tuple[ScorePoint, ...] = ()
    if naep_cfg.get("include_national"):
        national_scores = _optional_sweep(cfg, session, NATIONAL_PUBLIC, grades)

    return AssessmentRecord(
        entity_id=entity.entity_id,
        state_code=entity.state_code,
        district_name=district_name,
        extracted_at=extracted_at,
        state_scores=tuple(state_scores),
        district_scores=district_scores,
        national_scores=national_scores,
    )


def fetch_assessment(
    cfg: Dict[str, Any],
    entity: EntityDescriptor,
    session: Optional[requests.Session] = None,
    use_cache: bool = True,
) -> AssessmentRecord:
    """Return the NAEP record for ``entity``, fetching it when the cache misses.

    Raises NoApplicableGradesError when no assessed grade applies and
    AssessmentFetchError when the state sweep yields nothing. Concurrent
    calls for the same entity are serialized so only one of them fetches.
    """
    with _entity_lock(entity.entity_id):
        if use_cache:
            cached = load_assessment(cfg, entity.entity_id)
            if cached is not None:
                return cached

        record = build_record(cfg, entity, session=session)
        save_assessment(cfg, record)
        return record
