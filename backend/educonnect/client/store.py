"""Client-side state for the resources, deals and community screens.

Each collection keeps the last fetched canonical list (`items`) and its
filtered projection (`filtered`). State is immutable: `reduce` maps
`(state, action)` to a new state, and every transition that touches
`items` or the criteria re-derives `filtered` in the same step.

`Store` wires the reducer to `ApiClient`: fetches set loading/error
flags. Toggles are applied optimistically, flipped back when the
request fails and overwritten by the server answer when it succeeds.
Creations and comments are applied once the server accepts them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Optional, Union

import httpx

from ..utils.filtering import FilterCriteria, apply_filters
from ..utils.geo import annotate_distances
from ..utils.toggles import reconcile_toggle, update_in
from .api import ApiClient, ApiError

logger = logging.getLogger("app.client")

RESOURCES = "resources"
DEALS = "deals"
COMMUNITY = "community"
COLLECTIONS = (RESOURCES, DEALS, COMMUNITY)


@dataclass(frozen=True)
class CollectionState:
    items: tuple = ()
    filtered: tuple = ()
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    categories: tuple = ()
    is_loading: bool = False
    error: Optional[str] = None
    user_location: Optional[tuple] = None


# actions

@dataclass(frozen=True)
class FetchStarted:
    pass


@dataclass(frozen=True)
class FetchSucceeded:
    items: tuple


@dataclass(frozen=True)
class FetchFailed:
    error: str


@dataclass(frozen=True)
class CategoriesLoaded:
    categories: tuple


@dataclass(frozen=True)
class SetFilters:
    criteria: FilterCriteria


@dataclass(frozen=True)
class ClearFilters:
    pass


@dataclass(frozen=True)
class ToggleFlag:
    entity_id: Any
    field: str
    counter: Optional[str] = None


@dataclass(frozen=True)
class FieldsSynced:
    entity_id: Any
    values: Mapping


@dataclass(frozen=True)
class SetUserLocation:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ItemCreated:
    item: Mapping


@dataclass(frozen=True)
class CommentAdded:
    post_id: Any
    comment: Mapping


def _with_items(state: CollectionState, items, **changes) -> CollectionState:
    items = tuple(items)
    criteria = changes.get("criteria", state.criteria)
    return replace(state, items=items, filtered=tuple(apply_filters(items, criteria)), **changes)


def _located(state: CollectionState, items):
    if state.user_location is None:
        return items
    return annotate_distances(items, *state.user_location)


def reduce(state: CollectionState, action) -> CollectionState:
    """Return the state that follows `action`; unknown actions raise `TypeError`."""
    if isinstance(action, FetchStarted):
        return replace(state, is_loading=True, error=None)
    if isinstance(action, FetchSucceeded):
        return _with_items(state, _located(state, action.items), is_loading=False, error=None)
    if isinstance(action, FetchFailed):
        return replace(state, is_loading=False, error=action.error)
    if isinstance(action, CategoriesLoaded):
        return replace(state, categories=tuple(action.categories))
    if isinstance(action, SetFilters):
        return _with_items(state, state.items, criteria=action.criteria)
    if isinstance(action, ClearFilters):
        return _with_items(state, state.items, criteria=FilterCriteria())
    if isinstance(action, ToggleFlag):
        items, filtered = reconcile_toggle(state.items, state.filtered, action.entity_id, action.field, action.counter)
        return replace(state, items=tuple(items), filtered=tuple(filtered))
    if isinstance(action, FieldsSynced):
        return _with_items(state, update_in(state.items, action.entity_id, action.values))
    if isinstance(action, SetUserLocation):
        located = replace(state, user_location=(action.latitude, action.longitude))
        return _with_items(located, _located(located, state.items))
    if isinstance(action, ItemCreated):
        return _with_items(state, (dict(action.item),) + state.items)
    if isinstance(action, CommentAdded):
        if not any(p.get("id") == action.post_id for p in state.items):
            return state
        items = [
            {**p, "comments": list(p.get("comments") or []) + [dict(action.comment)]}
            if p.get("id") == action.post_id else p
            for p in state.items
        ]
        return _with_items(state, items)
    raise TypeError(f"unknown action {action!r}")


# toggle settings per collection: (field, coupled counter, keys the server answers with)
_TOGGLES = {
    RESOURCES: ("saved", None, ("saved", "saveCount")),
    DEALS: ("saved", None, ("saved", "saveCount")),
    COMMUNITY: ("isLiked", "likes", ("isLiked", "likes")),
}


class Store:
    """Holds one `CollectionState` per collection and talks to the API."""

    def __init__(self, api: ApiClient):
        self.api = api
        self.state = {name: CollectionState() for name in COLLECTIONS}

    def dispatch(self, collection: str, action) -> CollectionState:
        self.state[collection] = reduce(self.state[collection], action)
        return self.state[collection]

    def __getitem__(self, collection: str) -> CollectionState:
        return self.state[collection]

    # fetching

    def _fetch(self, collection: str, call, key: str, **params) -> CollectionState:
        self.dispatch(collection, FetchStarted())
        try:
            payload = call(**params)
        except (ApiError, httpx.HTTPError) as exc:
            logger.warning("fetch %s failed: %s", collection, exc)
            message = exc.message if isinstance(exc, ApiError) else str(exc)
            return self.dispatch(collection, FetchFailed(message or f"Failed to fetch {collection}"))
        return self.dispatch(collection, FetchSucceeded(tuple(payload[key])))

    def fetch_resources(self, **params) -> CollectionState:
        return self._fetch(RESOURCES, self.api.list_resources, "resources", **params)

    def fetch_deals(self, **params) -> CollectionState:
        location = self.state[DEALS].user_location
        if location is not None:
            params.setdefault("latitude", location[0])
            params.setdefault("longitude", location[1])
        return self._fetch(DEALS, self.api.list_deals, "deals", **params)

    def fetch_posts(self, **params) -> CollectionState:
        return self._fetch(COMMUNITY, self.api.list_posts, "posts", **params)

    def fetch_categories(self, collection: str) -> CollectionState:
        return self.dispatch(collection, CategoriesLoaded(tuple(self.api.categories(collection))))

    # filters

    def set_filters(self, collection: str, criteria: Union[FilterCriteria, Mapping, None]) -> CollectionState:
        if not isinstance(criteria, FilterCriteria):
            criteria = FilterCriteria.from_mapping(criteria)
        return self.dispatch(collection, SetFilters(criteria))

    def clear_filters(self, collection: str) -> CollectionState:
        return self.dispatch(collection, ClearFilters())

    def set_user_location(self, latitude: float, longitude: float) -> CollectionState:
        return self.dispatch(DEALS, SetUserLocation(latitude, longitude))

    # mutations

    def _toggle(self, collection: str, entity_id, call) -> CollectionState:
        flag, counter, answered = _TOGGLES[collection]
        action = ToggleFlag(entity_id, flag, counter)
        self.dispatch(collection, action)
        try:
            payload = call(entity_id)
        except (ApiError, httpx.HTTPError):
            # a second flip restores the previous flag and counter
            self.dispatch(collection, action)
            raise
        # the server state wins over the optimistic guess
        values = {k: payload[k] for k in answered if k in (payload or {})}
        if not values:
            return self.state[collection]
        return self.dispatch(collection, FieldsSynced(entity_id, values))

    def toggle_save_resource(self, resource_id) -> CollectionState:
        return self._toggle(RESOURCES, resource_id, self.api.toggle_save_resource)

    def toggle_save_deal(self, deal_id) -> CollectionState:
        return self._toggle(DEALS, deal_id, self.api.toggle_save_deal)

    def toggle_like_post(self, post_id) -> CollectionState:
        return self._toggle(COMMUNITY, post_id, self.api.toggle_like_post)

    def create_post(self, content: str, category: str, tags=()) -> CollectionState:
        post = self.api.create_post(content, category, tags)
        return self.dispatch(COMMUNITY, ItemCreated(post))

    def add_comment(self, post_id, content: str) -> CollectionState:
        comment = self.api.add_comment(post_id, content)
        return self.dispatch(COMMUNITY, CommentAdded(post_id, comment))
