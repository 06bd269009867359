"""
Entity store boundary

The pipeline only reads entities by id and writes back embedding fields.
Storage itself lives outside this package; the in-memory store backs tests
and local runs.
"""

import copy
from typing import Any, Dict, List, Optional, Protocol, Tuple

from ..models.schemas import EntityKind


class EntityStore(Protocol):
    async def get(self, kind: EntityKind, entity_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def update(self, kind: EntityKind, entity_id: str, fields: Dict[str, Any]) -> None:
        ...

    async def list_ids(self, kind: EntityKind) -> List[str]:
        ...


class InMemoryEntityStore:
    """Dict-backed EntityStore"""

    def __init__(self):
        self._records: Dict[Tuple[str, str], Dict[str, Any]] = {}

    def put(self, kind: EntityKind, entity_id: str, entity: Dict[str, Any]) -> None:
        self._records[(EntityKind(kind).value, entity_id)] = dict(entity)

    async def get(self, kind: EntityKind, entity_id: str) -> Optional[Dict[str, Any]]:
        record = self._records.get((EntityKind(kind).value, entity_id))
        return copy.deepcopy(record) if record is not None else None

    async def update(self, kind: EntityKind, entity_id: str, fields: Dict[str, Any]) -> None:
        key = (EntityKind(kind).value, entity_id)
        if key not in self._records:
            raise KeyError(f"{key[0]} {entity_id} not found")
        self._records[key].update(fields)

    async def list_ids(self, kind: EntityKind) -> List[str]:
        kind_value = EntityKind(kind).value
        return [entity_id for (k, entity_id) in self._records if k == kind_value]
