from educonnect.utils.toggles import flip, reconcile_toggle, toggle_in, update_in


def test_toggle_twice_restores_flag():
    items = [{'id': 1, 'saved': False}, {'id': 2, 'saved': True}]
    once = toggle_in(items, 1, 'saved')
    assert once[0]['saved'] is True
    assert once[1] is items[1]
    assert toggle_in(once, 1, 'saved') == items


def test_counter_follows_flag_and_restores():
    post = {'id': 7, 'isLiked': False, 'likes': 12}
    liked = flip(post, 'isLiked', 'likes')
    assert liked == {'id': 7, 'isLiked': True, 'likes': 13}
    assert flip(liked, 'isLiked', 'likes') == post


def test_counter_never_negative():
    post = {'id': 1, 'isLiked': True, 'likes': 0}
    assert flip(post, 'isLiked', 'likes')['likes'] == 0


def test_unknown_id_is_noop():
    items = [{'id': 1, 'saved': False}]
    assert toggle_in(items, 99, 'saved') == items


def test_reconcile_updates_both_lists():
    canonical = [{'id': 1, 'saved': False}, {'id': 2, 'saved': False}]
    filtered = [{'id': 2, 'saved': False}]
    c, f = reconcile_toggle(canonical, filtered, 2, 'saved')
    assert c[1]['saved'] is True
    assert f[0]['saved'] is True


def test_reconcile_entity_missing_from_projection():
    canonical = [{'id': 1, 'saved': False}, {'id': 2, 'saved': False}]
    filtered = [{'id': 2, 'saved': False}]
    c, f = reconcile_toggle(canonical, filtered, 1, 'saved')
    assert c[0]['saved'] is True
    assert f == filtered


def test_update_in_overwrites_only_the_target():
    items = [{'id': 1, 'isLiked': False, 'likes': 3}, {'id': 2, 'isLiked': True, 'likes': 5}]
    synced = update_in(items, 2, {'isLiked': False, 'likes': 4})
    assert synced == [{'id': 1, 'isLiked': False, 'likes': 3}, {'id': 2, 'isLiked': False, 'likes': 4}]
    assert synced[0] is items[0]
    assert items[1]['likes'] == 5
    assert update_in(items, 99, {'likes': 0}) == items
