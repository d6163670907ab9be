"""Boolean flip helpers for per-user flags (`saved`, `isLiked`).

A flip may carry a coupled counter (post `likes`): it moves up by one
when the flag turns on and down by one when it turns off, and never
drops below zero.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence


def flip(entity: Mapping[str, Any], field: str, counter: Optional[str] = None) -> dict:
    """Return a copy of `entity` with `field` flipped."""
    item = dict(entity)
    item[field] = not bool(item.get(field))
    if counter is not None:
        step = 1 if item[field] else -1
        item[counter] = max(0, int(item.get(counter) or 0) + step)
    return item


def toggle_in(items: Sequence[Mapping[str, Any]], entity_id: Any, field: str, counter: Optional[str] = None) -> list:
    """Flip `field` on the entity with `id == entity_id`; unknown ids leave the list as-is."""
    return [flip(e, field, counter) if e.get("id") == entity_id else e for e in items]


def reconcile_toggle(
    canonical: Sequence[Mapping[str, Any]],
    filtered: Sequence[Mapping[str, Any]],
    entity_id: Any,
    field: str,
    counter: Optional[str] = None,
) -> tuple[list, list]:
    """Apply the same flip to the canonical list and its filtered projection.

    Each list is looked up independently: an id missing from one of
    them only changes the other.
    """
    return (
        toggle_in(canonical, entity_id, field, counter),
        toggle_in(filtered, entity_id, field, counter),
    )


def update_in(items: Sequence[Mapping[str, Any]], entity_id: Any, values: Mapping[str, Any]) -> list:
    """Overwrite `values` on the entity with `id == entity_id`."""
    return [{**e, **values} if e.get("id") == entity_id else e for e in items]
