from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import pandas as pd

from naepdash.datasets.naep.schema import AssessmentRecord
from naepdash.io.http import write_json

logger = logging.getLogger(__name__)

_UNSAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_dir(path: str) -> str:
    Path(path).mkdir(parents=True, exist_ok=True)
    return path


def cache_ttl(cfg: dict) -> timedelta:
    return timedelta(days=float(cfg["project"]["cache_ttl_days"]))


def assessment_cache_path(cfg: dict, entity_id: str) -> str:
    key = _UNSAFE_KEY.sub("_", str(entity_id))
    return str(Path(cfg["paths"]["cache_dir"]) / "naep" / f"{key}.json")


def is_expired(extracted_at: datetime, ttl: timedelta, now: Optional[datetime] = None) -> bool:
    now = now or utc_now()
    return now - extracted_at > ttl


def load_assessment(cfg: dict, entity_id: str, now: Optional[datetime] = None) -> Optional[AssessmentRecord]:
    """Return the cached record for ``entity_id`` or None on a miss.

    Stale entries are reported as misses and left on disk; the next
    successful save overwrites them.
    """
    path = Path(assessment_cache_path(cfg, entity_id))
    if not path.exists():
        logger.debug("NAEP cache miss for %s", entity_id)
        return None
    try:
        with path.open("r", encoding="utf-8") as f:
            payload: Dict[str, Any] = json.load(f)
        record = AssessmentRecord.from_dict(payload)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable NAEP cache entry %s: %s", path, exc)
        return None

    if is_expired(record.extracted_at, cache_ttl(cfg), now):
        logger.info("NAEP cache entry for %s expired (extracted %s)", entity_id, record.extracted_at.date())
        return None
    if not record.state_scores:
        logger.warning("Ignoring NAEP cache entry for %s with no state scores", entity_id)
        return None

    age_days = ((now or utc_now()) - record.extracted_at).days
    logger.info("Loaded NAEP data from cache for %s (age %d days)", entity_id, age_days)
    return record


def save_assessment(cfg: dict, record: AssessmentRecord) -> Optional[str]:
    """Upsert ``record``; returns the written path, or None if nothing was written."""
    if not record.state_scores:
        logger.warning("Refusing to cache NAEP record for %s without state scores", record.entity_id)
        return None
    out_path = assessment_cache_path(cfg, record.entity_id)
    try:
        write_json(record.to_dict(), out_path)
    except OSError as exc:
        logger.warning("Failed to cache NAEP data for %s: %s", record.entity_id, exc)
        return None
    logger.info("Saved NAEP data to cache for %s (%s)", record.entity_id, record.state_code)
    return out_path


def write_parquet(df: pd.DataFrame, path: str) -> str:
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    df.to_parquet(path, index=False)
    return path
