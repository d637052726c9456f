from pathlib import Path

import pytest

from naepdash import config as config_mod
from naepdash.entity.descriptor import ConfigDirectory


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    monkeypatch.delenv("NAEP_BASE_URL", raising=False)
    monkeypatch.delenv("NAEP_CACHE_TTL_DAYS", raising=False)


def test_defaults_are_filled(write_config, tmp_path):
    cfg = config_mod.load_config(write_config())

    assert cfg["naep"]["base_url"] == config_mod.NAEP_BASE_URL
    assert cfg["naep"]["years"] == [2022, 2019, 2017]
    assert cfg["naep"]["timeout_seconds"] == 30
    assert cfg["project"]["cache_ttl_days"] == 90
    assert Path(cfg["paths"]["cache_dir"]) == (tmp_path / "cache").resolve()
    assert Path(cfg["paths"]["output_dir"]) == (tmp_path / "out").resolve()


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config_mod.load_config(str(tmp_path / "config" / "nope.yaml"))


def test_environment_overrides(write_config, monkeypatch):
    monkeypatch.setenv("NAEP_BASE_URL", "http://localhost:8080/naep")
    monkeypatch.setenv("NAEP_CACHE_TTL_DAYS", "30")

    cfg = config_mod.load_config(write_config())

    assert cfg["naep"]["base_url"] == "http://localhost:8080/naep"
    assert cfg["project"]["cache_ttl_days"] == 30


def test_years_are_coerced_to_int(write_config):
    cfg = config_mod.load_config(write_config({"naep": {"years": ["2024", 2022]}}))
    assert cfg["naep"]["years"] == [2024, 2022]


def test_empty_years_rejected(write_config):
    with pytest.raises(ValueError, match="naep.years"):
        config_mod.load_config(write_config({"naep": {"years": []}}))


def test_entity_without_state_rejected(write_config):
    with pytest.raises(ValueError, match="entity_id and state_code"):
        config_mod.load_config(write_config({"entities": [{"entity_id": "1"}]}))


def test_config_directory_normalizes_descriptors(write_config):
    cfg = config_mod.load_config(write_config({
        "entities": [{"entity_id": 42, "state_code": "ca ", "district_name": "  ", "grade_low": "KG", "grade_high": 5}],
    }))
    directory = ConfigDirectory(cfg)

    entity = directory.get_entity("42")

    assert entity.state_code == "CA"
    assert entity.district_name is None
    assert entity.grade_high == "5"
    assert directory.get_entity("missing") is None
    assert directory.entity_ids() == ["42"]
