from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

DATASET = {
    "name": "naep",
    "source_name": "NAEP / Nation's Report Card DataService",
    "source_refresh_cadence": "biennial",
    "geo_method": "state_or_large_city_jurisdiction",
    "limitations": (
        "Scores describe the state or large-city district, not the school itself. "
        "Grade 12 is published nationally only and is never requested. "
        "Achievement-level breakdowns are estimated from the at-or-above-proficient share."
    ),
    "measures": {
        "mean_score": "Average scale score (stattype MN:MN, variable TOTAL)",
        "at_or_above_proficient": "Percent at or above Proficient (stattype ALC:AP)",
        "error_flag": "NAEP error flag for the mean score (0 = none)",
        "below_basic_est": "Estimated percent below Basic (heuristic)",
        "basic_est": "Estimated percent at Basic (heuristic, fixed 35.0)",
        "proficient_est": "Estimated percent at Proficient (90% of at-or-above-proficient)",
        "advanced_est": "Estimated percent at Advanced (10% of at-or-above-proficient)",
    },
}

# subject -> (NAEP subject code, composite subscale)
SUBJECTS: Dict[str, Tuple[str, str]] = {
    "mathematics": ("mathematics", "MRPCM"),
    "reading": ("reading", "RRPCM"),
    "science": ("science", "SRPUV"),
}

STAT_MEAN = "MN:MN"
STAT_AT_OR_ABOVE_PROFICIENT = "ALC:AP"


@dataclass(frozen=True)
class ScorePoint:
    subject: str
    grade: int
    year: int
    jurisdiction: str
    jurisdiction_code: str
    mean_score: float
    at_or_above_proficient: Optional[float] = None
    error_flag: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, row: Dict[str, Any]) -> "ScorePoint":
        proficient = row.get("at_or_above_proficient")
        return cls(
            subject=row["subject"],
            grade=int(row["grade"]),
            year=int(row["year"]),
            jurisdiction=row.get("jurisdiction") or "",
            jurisdiction_code=row.get("jurisdiction_code") or "",
            mean_score=float(row.get("mean_score") or 0.0),
            at_or_above_proficient=float(proficient) if proficient is not None else None,
            error_flag=int(row.get("error_flag") or 0),
        )


@dataclass(frozen=True)
class AssessmentRecord:
    entity_id: str
    state_code: str
    extracted_at: datetime
    state_scores: Tuple[ScorePoint, ...]
    district_name: Optional[str] = None
    district_scores: Tuple[ScorePoint, ...] = field(default_factory=tuple)
    national_scores: Tuple[ScorePoint, ...] = field(default_factory=tuple)

    @property
    def has_district(self) -> bool:
        return bool(self.district_scores)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entity_id": self.entity_id,
            "state": self.state_code,
            "district": self.district_name,
            "extracted_at": self.extracted_at.isoformat(),
            "state_scores": [s.to_dict() for s in self.state_scores],
            "district_scores": [s.to_dict() for s in self.district_scores] or None,
            "national_scores": [s.to_dict() for s in self.national_scores] or None,
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AssessmentRecord":
        extracted_at = datetime.fromisoformat(payload["extracted_at"])
        if extracted_at.tzinfo is None:
            extracted_at = extracted_at.replace(tzinfo=timezone.utc)
        return cls(
            entity_id=payload["entity_id"],
            state_code=payload["state"],
            district_name=payload.get("district"),
            extracted_at=extracted_at,
            state_scores=tuple(ScorePoint.from_dict(r) for r in payload.get("state_scores") or []),
            district_scores=tuple(ScorePoint.from_dict(r) for r in payload.get("district_scores") or []),
            national_scores=tuple(ScorePoint.from_dict(r) for r in payload.get("national_scores") or []),
        )
