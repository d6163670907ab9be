import pytest
from fastapi.testclient import TestClient

from educonnect.client.api import ApiClient, ApiError
from educonnect.client.store import (
    COMMUNITY,
    DEALS,
    RESOURCES,
    ClearFilters,
    CollectionState,
    CommentAdded,
    FetchFailed,
    FetchStarted,
    FetchSucceeded,
    FieldsSynced,
    ItemCreated,
    SetFilters,
    SetUserLocation,
    Store,
    ToggleFlag,
    reduce,
)
from educonnect.main import app
from educonnect.utils.filtering import FilterCriteria

POSTS = (
    {'id': 1, 'title': '', 'content': 'Eiffel ?', 'category': 'Bourses', 'likes': 12, 'isLiked': False, 'comments': []},
    {'id': 2, 'title': '', 'content': 'Free Mobile', 'category': 'Deals', 'likes': 28, 'isLiked': True, 'comments': []},
    {'id': 3, 'title': '', 'content': 'Google cert', 'category': 'Cours', 'likes': 15, 'isLiked': False, 'comments': []},
)

DEALS_DATA = (
    {'id': 1, 'title': 'MacBook', 'category': 'Technology', 'saved': False,
     'location': {'latitude': 48.8566, 'longitude': 2.3522, 'address': 'Opéra'}},
    {'id': 2, 'title': 'Free Mobile', 'category': 'Telecom', 'saved': True, 'location': None},
    {'id': 3, 'title': 'Repas', 'category': 'Food', 'saved': False,
     'location': {'latitude': 48.8423, 'longitude': 2.3445, 'address': 'Jussieu'}},
)


def loaded(items):
    state = reduce(CollectionState(), FetchStarted())
    assert state.is_loading
    return reduce(state, FetchSucceeded(items))


def test_fetch_populates_canonical_and_filtered():
    state = loaded(POSTS)
    assert not state.is_loading
    assert state.items == POSTS
    assert state.filtered == POSTS
    failed = reduce(reduce(state, FetchStarted()), FetchFailed('boom'))
    assert failed.is_loading is False
    assert failed.error == 'boom'
    assert failed.items == POSTS


def test_filters_rederive_projection():
    state = reduce(loaded(POSTS), SetFilters(FilterCriteria(category='Cours')))
    assert [p['id'] for p in state.filtered] == [3]
    assert reduce(state, SetFilters(FilterCriteria(category='all'))).filtered == POSTS
    assert reduce(state, ClearFilters()).filtered == POSTS


@pytest.mark.parametrize('category', ['all', 'Cours'])
def test_created_post_lands_first_in_both_lists(category):
    state = reduce(loaded(POSTS), SetFilters(FilterCriteria(category=category)))
    new = {'id': 4, 'content': 'hello', 'category': 'Cours', 'likes': 0, 'isLiked': False, 'comments': []}
    state = reduce(state, ItemCreated(new))
    assert state.items[0]['content'] == 'hello'
    assert state.filtered[0]['content'] == 'hello'


def test_like_toggle_updates_both_lists():
    state = reduce(loaded(POSTS), SetFilters(FilterCriteria(category='Bourses')))
    liked = reduce(state, ToggleFlag(1, 'isLiked', 'likes'))
    assert liked.items[0]['likes'] == 13 and liked.items[0]['isLiked'] is True
    assert liked.filtered[0]['likes'] == 13 and liked.filtered[0]['isLiked'] is True
    back = reduce(liked, ToggleFlag(1, 'isLiked', 'likes'))
    assert back.items == state.items
    assert back.filtered == state.filtered


def test_comment_on_unknown_post_is_noop():
    state = loaded(POSTS)
    assert reduce(state, CommentAdded(99, {'id': 'c1', 'content': 'x'})) is state
    updated = reduce(state, CommentAdded(2, {'id': 'c1', 'content': 'x'}))
    assert updated.items[1]['comments'] == [{'id': 'c1', 'content': 'x'}]
    assert updated.filtered[1]['comments'] == [{'id': 'c1', 'content': 'x'}]
    assert state.items[1]['comments'] == []


def test_user_location_enables_proximity_filter():
    state = reduce(loaded(DEALS_DATA), SetUserLocation(48.8566, 2.3522))
    assert [d.get('distance') for d in state.items] == [0.0, None, 1.7]
    near = reduce(state, SetFilters(FilterCriteria(proximity_km=1.0)))
    assert [d['id'] for d in near.filtered] == [1]
    # refetched items keep getting distances
    refreshed = reduce(near, FetchSucceeded(DEALS_DATA))
    assert refreshed.items[2]['distance'] == 1.7



def test_search_filters_posts_by_content():
    state = reduce(loaded(POSTS), SetFilters(FilterCriteria(search_query='mobile')))
    assert [p['id'] for p in state.filtered] == [2]


def test_synced_fields_replace_local_values():
    state = reduce(loaded(POSTS), SetFilters(FilterCriteria(category='Deals')))
    synced = reduce(state, FieldsSynced(2, {'isLiked': False, 'likes': 40}))
    assert synced.items[1]['likes'] == 40 and synced.items[1]['isLiked'] is False
    assert synced.filtered == (synced.items[1],)
    assert reduce(state, FieldsSynced(99, {'likes': 0})).items == state.items

def test_unknown_action_raises():
    with pytest.raises(TypeError):
        reduce(CollectionState(), object())


class FailingApi:
    def list_resources(self, **params):
        raise ApiError(500, 'Internal Server Error', 'db down')

    def toggle_save_deal(self, deal_id):
        raise ApiError(401, 'Unauthorized', 'Access token required')


def test_store_failed_fetch_sets_error():
    store = Store(FailingApi())
    state = store.fetch_resources()
    assert state.is_loading is False
    assert state.error == 'db down'


def test_store_failed_toggle_leaves_state_unchanged():
    store = Store(FailingApi())
    store.dispatch(DEALS, FetchSucceeded(DEALS_DATA))
    before = store[DEALS]
    with pytest.raises(ApiError):
        store.toggle_save_deal(2)
    assert store[DEALS] == before



class StaleApi:
    """Answers toggles with server state that differs from the local cache."""

    def toggle_like_post(self, post_id):
        return {'isLiked': True, 'likes': 30}

    def toggle_save_deal(self, deal_id):
        return {'message': 'Deal unsaved', 'saved': False, 'saveCount': 3}


def test_store_toggle_takes_server_answer():
    store = Store(StaleApi())
    store.dispatch(COMMUNITY, FetchSucceeded(POSTS))
    # cache says liked, so the optimistic flip guesses unliked
    posts = store.toggle_like_post(2)
    assert posts.items[1]['isLiked'] is True and posts.items[1]['likes'] == 30
    assert posts.filtered[1] == posts.items[1]

    store.dispatch(DEALS, FetchSucceeded(DEALS_DATA))
    deals = store.toggle_save_deal(1)
    assert deals.items[0]['saved'] is False
    assert deals.items[0]['saveCount'] == 3
    assert deals.filtered[0]['saved'] is False

def test_store_against_api(session, signup):
    from educonnect import models
    session.add(models.Resource(title='Free course', type=models.ResourceType.COURSE, category='AI', is_free=True))
    session.add(models.Resource(title='Paid course', type=models.ResourceType.COURSE, category='AI', is_free=False))
    session.commit()

    api = ApiClient(TestClient(app))
    api.register('store@x.com', 'secret1', 'Store User')
    store = Store(api)

    resources = store.fetch_resources()
    assert resources.error is None
    assert len(resources.items) == 2
    filtered = store.set_filters(RESOURCES, {'isFree': True})
    assert [r['title'] for r in filtered.filtered] == ['Free course']

    free_id = filtered.filtered[0]['id']
    toggled = store.toggle_save_resource(free_id)
    assert toggled.filtered[0]['saved'] is True
    assert api.list_resources(isFree=True)['resources'][0]['saved'] is True
    assert store.fetch_categories(RESOURCES).categories == ('AI',)
    assert api.apply_for_resource(free_id, notes='hi')['application']['resourceId'] == free_id

    store.fetch_posts()
    store.set_filters(COMMUNITY, {'category': 'Cours'})
    posts = store.create_post('hello', 'Cours')
    assert posts.items[0]['content'] == 'hello'
    assert posts.filtered[0]['content'] == 'hello'

    post_id = posts.items[0]['id']
    liked = store.toggle_like_post(post_id)
    assert liked.items[0]['likes'] == 1 and liked.items[0]['isLiked'] is True
    commented = store.add_comment(post_id, 'nice')
    assert commented.filtered[0]['comments'][0]['content'] == 'nice'

    with pytest.raises(ApiError) as exc:
        store.add_comment(999, 'lost')
    assert exc.value.status_code == 404
    assert store[COMMUNITY] == commented
