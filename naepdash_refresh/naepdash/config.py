import os
from pathlib import Path
from typing import Any, Dict

import yaml
from dotenv import load_dotenv

NAEP_BASE_URL = "https://www.nationsreportcard.gov/DataService/GetAdhocData.aspx"
DEFAULT_YEARS = [2022, 2019, 2017]
DEFAULT_CACHE_TTL_DAYS = 90


def load_config(path: str) -> Dict[str, Any]:
    load_dotenv()
    cfg_path = Path(path).resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(f"Config not found: {cfg_path}")
    with cfg_path.open("r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}

    base_dir = cfg_path.parent.parent
    cfg.setdefault("project", {})
    cfg.setdefault("naep", {})
    cfg["entities"] = cfg.get("entities") or []

    cfg["project"].setdefault("cache_dir", "data/cache")
    cfg["project"].setdefault("output_dir", "output")
    cfg["project"].setdefault("cache_ttl_days", DEFAULT_CACHE_TTL_DAYS)

    cfg["naep"].setdefault("base_url", NAEP_BASE_URL)
    cfg["naep"].setdefault("years", list(DEFAULT_YEARS))
    cfg["naep"].setdefault("timeout_seconds", 30)
    cfg["naep"].setdefault("max_workers", 4)
    cfg["naep"].setdefault("retries", 3)
    cfg["naep"].setdefault("include_national", True)

    if os.getenv("NAEP_BASE_URL"):
        cfg["naep"]["base_url"] = os.getenv("NAEP_BASE_URL")
    if os.getenv("NAEP_CACHE_TTL_DAYS"):
        cfg["project"]["cache_ttl_days"] = int(os.getenv("NAEP_CACHE_TTL_DAYS"))

    years = cfg["naep"]["years"]
    if not years:
        raise ValueError("Config must include at least one naep.years entry")
    cfg["naep"]["years"] = [int(y) for y in years]

    for entity in cfg["entities"]:
        if not entity.get("entity_id") or not entity.get("state_code"):
            raise ValueError("Each configured entity needs entity_id and state_code")

    cfg["paths"] = {
        "base_dir": str(base_dir),
        "cache_dir": str((base_dir / cfg["project"]["cache_dir"]).resolve()),
        "output_dir": str((base_dir / cfg["project"]["output_dir"]).resolve()),
    }

    return cfg
