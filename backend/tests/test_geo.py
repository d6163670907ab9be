from educonnect.utils.geo import annotate_distances, haversine_km

PARIS = (48.8566, 2.3522)
JUSSIEU = (48.8423, 2.3445)
LONDON = (51.5074, -0.1278)


def test_distance_is_zero_for_same_point():
    assert haversine_km(*PARIS, *PARIS) == 0


def test_distance_is_symmetric():
    assert haversine_km(*PARIS, *LONDON) == haversine_km(*LONDON, *PARIS)
    assert haversine_km(*PARIS, *JUSSIEU) == haversine_km(*JUSSIEU, *PARIS)


def test_distance_rounded_to_one_decimal():
    d = haversine_km(*PARIS, *JUSSIEU)
    assert d == 1.7
    assert round(d, 1) == d
    assert haversine_km(*PARIS, *JUSSIEU) == d


def test_distance_paris_london():
    assert 340 < haversine_km(*PARIS, *LONDON) < 346


def test_annotate_distances_skips_unlocated():
    deals = [
        {'id': 1, 'location': {'latitude': JUSSIEU[0], 'longitude': JUSSIEU[1], 'address': 'Jussieu'}},
        {'id': 2, 'location': None},
    ]
    out = annotate_distances(deals, *PARIS)
    assert out[0]['distance'] == 1.7
    assert 'distance' not in out[1]
    # inputs untouched
    assert 'distance' not in deals[0]
