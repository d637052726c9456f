"""
Pytest configuration and shared fixtures for the naepdash tests.

No test touches the network: NAEP DataService calls go through FakeNAEPSession,
which answers from a routing table keyed by
(jurisdiction, subject, grade, stattype).
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Tuple

import pytest
import requests
import yaml

from naepdash import config as config_mod
from naepdash.datasets.naep.schema import AssessmentRecord, ScorePoint
from naepdash.entity.descriptor import EntityDescriptor

MEAN = "MN:MN"
PROFICIENT = "ALC:AP"

# Year -> (mean score, at-or-above-proficient percent)
SAMPLE_SERIES = {2022: (238.0, 40.0), 2019: (235.0, 35.0), 2017: (233.0, 33.0)}


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None):
        self.status_code = status_code
        self._payload = payload

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeNAEPSession:
    """Stand-in for requests.Session answering NAEP DataService queries."""

    def __init__(self, routes: Dict[Tuple[str, str, str, str], Any]):
        self.routes = routes
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, params=None, timeout=None, **kwargs):
        params = dict(params or {})
        with self._lock:
            self.calls.append({"url": url, "params": params, "timeout": timeout})
        key = (params.get("jurisdiction"), params.get("subject"), params.get("grade"), params.get("stattype"))
        answer = self.routes.get(key, 500)
        if isinstance(answer, Exception):
            raise answer
        if isinstance(answer, int):
            return FakeResponse(answer, {"status": answer, "result": []})
        return FakeResponse(200, answer)

    def calls_for(self, jurisdiction: str):
        return [c for c in self.calls if c["params"].get("jurisdiction") == jurisdiction]


def naep_payload(label: str, values: Dict[int, float], status: int = 200) -> Dict[str, Any]:
    return {
        "status": status,
        "result": [
            {"value": value, "errorFlag": 0, "year": year, "jurisLabel": label}
            for year, value in values.items()
        ],
    }


def routes_for(
    jurisdiction: str,
    label: str,
    grades: Iterable[int] = (4, 8),
    subjects: Iterable[str] = ("mathematics", "reading", "science"),
    series: Dict[int, Tuple[float, float]] = None,
) -> Dict[Tuple[str, str, str, str], Any]:
    series = series or SAMPLE_SERIES
    routes = {}
    for subject in subjects:
        for grade in grades:
            routes[(jurisdiction, subject, str(grade), MEAN)] = naep_payload(
                label, {y: v[0] for y, v in series.items()}
            )
            routes[(jurisdiction, subject, str(grade), PROFICIENT)] = naep_payload(
                label, {y: v[1] for y, v in series.items()}
            )
    return routes


@pytest.fixture
def make_routes() -> Callable[..., Dict]:
    return routes_for


@pytest.fixture
def make_payload() -> Callable[..., Dict]:
    return naep_payload


@pytest.fixture
def fake_session() -> Callable[..., FakeNAEPSession]:
    return FakeNAEPSession


@pytest.fixture
def write_config(tmp_path) -> Callable[..., str]:
    """Write a YAML config under tmp_path/config and return its path."""

    def _write(overrides: Dict[str, Any] = None) -> str:
        cfg = {
            "project": {"cache_dir": "cache", "output_dir": "out"},
            "naep": {"include_national": False, "max_workers": 3, "retries": 0},
            "entities": [
                {
                    "entity_id": "062271003230",
                    "state_code": "CA",
                    "district_name": "Los Angeles Unified",
                    "grade_low": "KG",
                    "grade_high": "08",
                },
                {
                    "entity_id": "481623001496",
                    "state_code": "TX",
                    "district_name": "Plano ISD",
                    "grade_low": "09",
                    "grade_high": "12",
                },
            ],
        }
        for section, values in (overrides or {}).items():
            if isinstance(values, dict):
                cfg.setdefault(section, {}).update(values)
            else:
                cfg[section] = values
        cfg_dir = tmp_path / "config"
        cfg_dir.mkdir(exist_ok=True)
        path = cfg_dir / "naepdash.yaml"
        path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def naep_cfg(write_config, monkeypatch) -> Dict[str, Any]:
    monkeypatch.delenv("NAEP_BASE_URL", raising=False)
    monkeypatch.delenv("NAEP_CACHE_TTL_DAYS", raising=False)
    return config_mod.load_config(write_config())


@pytest.fixture
def la_entity() -> EntityDescriptor:
    return EntityDescriptor(
        entity_id="062271003230",
        state_code="CA",
        district_name="Los Angeles Unified School District",
        grade_low="KG",
        grade_high="08",
    )


def _point(subject, grade, year, mean, proficient, code="CA", label="California") -> ScorePoint:
    return ScorePoint(
        subject=subject,
        grade=grade,
        year=year,
        jurisdiction=label,
        jurisdiction_code=code,
        mean_score=mean,
        at_or_above_proficient=proficient,
    )


@pytest.fixture
def sample_record() -> AssessmentRecord:
    """CA record: math grade 4 over three years, reading grade 4 over two, LA district math."""
    state = (
        _point("mathematics", 4, 2019, 235.0, 35.0),
        _point("mathematics", 4, 2022, 238.0, 40.0),
        _point("mathematics", 4, 2017, 233.0, 33.0),
        _point("reading", 4, 2022, 214.0, 30.0),
        _point("reading", 4, 2019, 216.0, None),
        _point("science", 4, 2022, 0.0, None),
        _point("mathematics", 8, 2022, 270.0, 23.0),
    )
    district = (
        _point("mathematics", 4, 2022, 228.0, 26.0, code="XL", label="Los Angeles"),
        _point("mathematics", 4, 2019, 224.0, 22.0, code="XL", label="Los Angeles"),
    )
    national = (
        _point("mathematics", 4, 2022, 235.0, 35.0, code="NP", label="National public"),
    )
    return AssessmentRecord(
        entity_id="062271003230",
        state_code="CA",
        district_name="Los Angeles Unified School District",
        extracted_at=datetime(2026, 9, 1, tzinfo=timezone.utc),
        state_scores=state,
        district_scores=district,
        national_scores=national,
    )
