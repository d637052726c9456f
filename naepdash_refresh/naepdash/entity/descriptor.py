from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol


@dataclass(frozen=True)
class EntityDescriptor:
    """Read-only view of a school as supplied by the directory service."""

    entity_id: str
    state_code: str
    district_name: Optional[str] = None
    grade_low: Optional[str] = None
    grade_high: Optional[str] = None


class EntityDirectory(Protocol):
    def get_entity(self, entity_id: str) -> Optional[EntityDescriptor]:
        ...


def _optional_str(val: Any) -> Optional[str]:
    if val is None:
        return None
    text = str(val).strip()
    return text or None


def descriptor_from_dict(row: Dict[str, Any]) -> EntityDescriptor:
    return EntityDescriptor(
        entity_id=str(row["entity_id"]).strip(),
        state_code=str(row["state_code"]).strip().upper(),
        district_name=_optional_str(row.get("district_name")),
        grade_low=_optional_str(row.get("grade_low")),
        grade_high=_optional_str(row.get("grade_high")),
    )


class ConfigDirectory:
    """Directory backed by the ``entities`` list of a loaded config."""

    def __init__(self, cfg: Dict[str, Any]):
        self._entities: Dict[str, EntityDescriptor] = {}
        for row in cfg.get("entities", []):
            entity = descriptor_from_dict(row)
            self._entities[entity.entity_id] = entity

    def get_entity(self, entity_id: str) -> Optional[EntityDescriptor]:
        return self._entities.get(str(entity_id).strip())

    def entity_ids(self) -> List[str]:
        return list(self._entities)
