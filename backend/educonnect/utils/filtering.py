"""Predicate filtering over already-fetched collections.

Entities are plain dicts in the API wire format (`title`, `category`,
`type`, `isFree`, `distance`). Posts have no title, so search also
looks at `content`. Criteria left unset, or set to `"all"`, do not
filter. The result keeps the input order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

ALL = "all"
SEARCH_KEYS = ("title", "content")


@dataclass(frozen=True)
class FilterCriteria:
    category: Optional[str] = None
    type: Optional[str] = None
    is_free: Optional[bool] = None
    search_query: Optional[str] = None
    proximity_km: Optional[float] = None

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "FilterCriteria":
        """Build criteria from wire keys (`isFree`, `searchQuery`, `proximityKm`) or field names."""
        if not data:
            return cls()

        def pick(*keys):
            for k in keys:
                if k in data and data[k] is not None:
                    return data[k]
            return None

        proximity = pick("proximityKm", "proximity_km")
        return cls(
            category=pick("category"),
            type=pick("type"),
            is_free=pick("isFree", "is_free"),
            search_query=pick("searchQuery", "search_query"),
            proximity_km=float(proximity) if proximity is not None else None,
        )


def _active(value: Optional[str]) -> bool:
    return value is not None and value != ALL


def matches(entity: Mapping[str, Any], criteria: FilterCriteria) -> bool:
    """Return True if `entity` satisfies every active criterion."""
    if _active(criteria.category) and entity.get("category") != criteria.category:
        return False
    if _active(criteria.type) and entity.get("type") != criteria.type:
        return False
    if criteria.is_free is not None and entity.get("isFree") != criteria.is_free:
        return False
    query = (criteria.search_query or "").strip().lower()
    if query and not any(query in (entity.get(key) or "").lower() for key in SEARCH_KEYS):
        return False
    if criteria.proximity_km is not None:
        distance = entity.get("distance")
        if distance is None or distance > criteria.proximity_km:
            return False
    return True


def apply_filters(entities: Iterable[Mapping[str, Any]], criteria: Optional[FilterCriteria]) -> list:
    if criteria is None:
        return list(entities)
    return [e for e in entities if matches(e, criteria)]
