from __future__ import annotations

from typing import Dict, List, NamedTuple, Optional, Sequence

import pandas as pd

from naepdash.datasets.naep.schema import SUBJECTS, AssessmentRecord, ScorePoint

# Share of the at-or-above-proficient group assumed to be Advanced, and the
# fixed Basic share. Estimates only; NAEP does not publish the split below
# the national level.
ADVANCED_SHARE = 0.10
BASIC_ESTIMATE = 35.0


class ScoreTrend(NamedTuple):
    current: Optional[ScorePoint]
    previous: Optional[ScorePoint]
    change: float


class AchievementLevels(NamedTuple):
    below_basic: float
    basic: float
    proficient: float
    advanced: float


def _scores(record: AssessmentRecord, use_district: bool) -> Sequence[ScorePoint]:
    if use_district and record.district_scores:
        return record.district_scores
    return record.state_scores


def _scored(record: AssessmentRecord, subject: str, grade: int, use_district: bool) -> List[ScorePoint]:
    return [
        s for s in _scores(record, use_district)
        if s.subject == subject and s.grade == grade and s.mean_score > 0
    ]


def most_recent_score(
    record: AssessmentRecord,
    subject: str,
    grade: int,
    use_district: bool = False,
) -> Optional[ScorePoint]:
    latest: Optional[ScorePoint] = None
    for score in _scores(record, use_district):
        if score.subject != subject or score.grade != grade:
            continue
        if latest is None or score.year > latest.year:
            latest = score
    return latest


def score_trend(record: AssessmentRecord, subject: str, grade: int, use_district: bool = False) -> ScoreTrend:
    """Compare the two most recent scored years (newest first)."""
    scores = sorted(_scored(record, subject, grade, use_district), key=lambda s: s.year, reverse=True)
    if not scores:
        return ScoreTrend(None, None, 0.0)
    if len(scores) == 1:
        return ScoreTrend(scores[0], None, 0.0)
    current, previous = scores[0], scores[1]
    return ScoreTrend(current, previous, current.mean_score - previous.mean_score)


def all_scores_for_subject_grade(
    record: AssessmentRecord,
    subject: str,
    grade: int,
    use_district: bool = False,
) -> List[ScorePoint]:
    return sorted(_scored(record, subject, grade, use_district), key=lambda s: s.year)


def subject_score_summary(record: AssessmentRecord, grade: int, use_district: bool = False) -> Dict[str, float]:
    summary: Dict[str, float] = {}
    for subject in SUBJECTS:
        latest = most_recent_score(record, subject, grade, use_district)
        if latest is not None and latest.mean_score > 0:
            summary[subject] = latest.mean_score
    return summary


def estimate_achievement_levels(at_or_above_proficient: Optional[float]) -> AchievementLevels:
    if not at_or_above_proficient:
        return AchievementLevels(0.0, 0.0, 0.0, 0.0)
    proficient_plus = float(at_or_above_proficient)
    advanced = proficient_plus * ADVANCED_SHARE
    proficient = proficient_plus - advanced
    basic = BASIC_ESTIMATE
    below_basic = 100.0 - proficient_plus - basic
    if below_basic < 0:
        basic += below_basic
        below_basic = 0.0
    return AchievementLevels(below_basic, basic, proficient, advanced)


def achievement_levels(
    record: AssessmentRecord,
    subject: str,
    grade: int,
    use_district: bool = False,
) -> AchievementLevels:
    """Estimated achievement-level split for the most recent year.

    Only the at-or-above-proficient share is real data; the rest is a
    fixed heuristic and must not be presented as published figures.
    """
    latest = most_recent_score(record, subject, grade, use_district)
    return estimate_achievement_levels(latest.at_or_above_proficient if latest else None)


def national_gap(record: AssessmentRecord, subject: str, grade: int, use_district: bool = False) -> Optional[float]:
    local = most_recent_score(record, subject, grade, use_district)
    if local is None or local.mean_score <= 0:
        return None
    national = [
        s for s in record.national_scores
        if s.subject == subject and s.grade == grade and s.year == local.year and s.mean_score > 0
    ]
    if not national:
        return None
    return local.mean_score - national[0].mean_score


def scores_frame(records: Sequence[AssessmentRecord]) -> pd.DataFrame:
    rows = []
    for record in records:
        scopes = (
            ("state", record.state_scores),
            ("district", record.district_scores),
            ("national", record.national_scores),
        )
        for scope, scores in scopes:
            for score in scores:
                row = score.to_dict()
                row["entity_id"] = record.entity_id
                row["scope"] = scope
                row["extracted_at"] = record.extracted_at.isoformat()
                rows.append(row)
    if not rows:
        return pd.DataFrame()
    df = pd.DataFrame(rows)
    lead = ["entity_id", "scope", "jurisdiction_code", "jurisdiction", "subject", "grade", "year"]
    df = df[lead + [c for c in df.columns if c not in lead]]
    return df.sort_values(["entity_id", "scope", "subject", "grade", "year"], ignore_index=True)


def achievement_frame(records: Sequence[AssessmentRecord]) -> pd.DataFrame:
    rows = []
    for record in records:
        grades = sorted({s.grade for s in record.state_scores})
        scopes = [False, True] if record.district_scores else [False]
        for use_district in scopes:
            for subject in SUBJECTS:
                for grade in grades:
                    latest = most_recent_score(record, subject, grade, use_district)
                    if latest is None or not latest.at_or_above_proficient:
                        continue
                    levels = achievement_levels(record, subject, grade, use_district)
                    rows.append({
                        "entity_id": record.entity_id,
                        "scope": "district" if use_district else "state",
                        "jurisdiction_code": latest.jurisdiction_code,
                        "subject": subject,
                        "grade": grade,
                        "year": latest.year,
                        "at_or_above_proficient": latest.at_or_above_proficient,
                        "below_basic_est": levels.below_basic,
                        "basic_est": levels.basic,
                        "proficient_est": levels.proficient,
                        "advanced_est": levels.advanced,
                        "estimated": True,
                    })
    return pd.DataFrame(rows)
