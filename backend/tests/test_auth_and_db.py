from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from educonnect import models
from educonnect.config import Settings
from educonnect.main import app
from educonnect.services import AuthService, decode_token

client = TestClient(app)


def test_register_login_and_filter_free_resources(session):
    # register
    r = client.post('/auth/register', json={'email': 'a@x.com', 'password': 'secret1', 'name': 'A'})
    assert r.status_code == 201
    user_id = r.json()['user']['id']
    # login
    r2 = client.post('/auth/login', json={'email': 'a@x.com', 'password': 'secret1'})
    assert r2.status_code == 200
    token = r2.json()['token']
    assert decode_token(token)['user_id'] == user_id

    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for i, free in enumerate([True, False, True, False, True]):
        session.add(models.Resource(title=f'R{i}', type=models.ResourceType.COURSE, category='Technology',
                                    is_free=free, created_at=base + timedelta(hours=i)))
    session.commit()

    r3 = client.get('/resources', params={'isFree': 'true'}, headers={'Authorization': f'Bearer {token}'})
    assert r3.status_code == 200
    body = r3.json()
    assert [x['title'] for x in body['resources']] == ['R4', 'R2', 'R0']
    assert all(x['isFree'] for x in body['resources'])
    assert body['pagination']['totalCount'] == 3


def test_duplicate_registration_conflicts():
    payload = {'email': 'dup@x.com', 'password': 'secret1', 'name': 'Dup'}
    assert client.post('/auth/register', json=payload).status_code == 201
    r = client.post('/auth/register', json=payload)
    assert r.status_code == 409
    assert r.json()['error'] == 'Conflict'


def test_register_validation_details():
    r = client.post('/auth/register', json={'email': 'not-an-email', 'password': '123', 'name': 'B'})
    assert r.status_code == 400
    body = r.json()
    assert body['error'] == 'Validation error'
    fields = {d['field'] for d in body['details']}
    assert {'email', 'password'} <= fields


def test_register_name_is_trimmed_and_required():
    r = client.post('/auth/register', json={'email': 'short@x.com', 'password': 'secret1', 'name': '  Z '})
    assert r.status_code == 201
    assert r.json()['user']['name'] == 'Z'
    for name in ('', '   '):
        blank = client.post('/auth/register', json={'email': 'blank@x.com', 'password': 'secret1', 'name': name})
        assert blank.status_code == 400, name
        assert [d['field'] for d in blank.json()['details']] == ['name']


def test_login_with_wrong_password_is_401(signup):
    signup('c@x.com', password='secret1')
    r = client.post('/auth/login', json={'email': 'c@x.com', 'password': 'wrong-pass'})
    assert r.status_code == 401
    assert r.json()['error'] == 'Invalid credentials'


def test_protected_endpoint_requires_token():
    r = client.get('/users/me')
    assert r.status_code == 401
    r2 = client.get('/users/me', headers={'Authorization': 'Bearer garbage'})
    assert r2.status_code == 401
    assert r2.json()['error'] == 'Invalid token'


def test_refresh_reissues_token(signup):
    user, headers = signup('d@x.com')
    token = headers['Authorization'].split()[1]
    r = client.post('/auth/refresh', json={'token': token})
    assert r.status_code == 200
    assert decode_token(r.json()['token'])['user_id'] == user['id']
    assert client.post('/auth/refresh', json={}).status_code == 401
    assert client.post('/auth/refresh', json={'token': 'nope'}).status_code == 401


def test_password_reset_flow(signup, session):
    signup('e@x.com', password='secret1')
    r = client.post('/auth/forgot-password', json={'email': 'e@x.com'})
    assert r.status_code == 200
    unknown = client.post('/auth/forgot-password', json={'email': 'ghost@x.com'})
    assert unknown.json() == r.json()

    reset_token = AuthService(session).forgot_password('e@x.com')
    # a reset token cannot be used as an access token
    assert client.get('/users/me', headers={'Authorization': f'Bearer {reset_token}'}).status_code == 401

    r2 = client.post('/auth/reset-password', json={'token': reset_token, 'newPassword': 'newsecret'})
    assert r2.status_code == 200
    assert client.post('/auth/login', json={'email': 'e@x.com', 'password': 'newsecret'}).status_code == 200
    assert client.post('/auth/login', json={'email': 'e@x.com', 'password': 'secret1'}).status_code == 401

    bad = client.post('/auth/reset-password', json={'token': 'bogus', 'newPassword': 'whatever1'})
    assert bad.status_code == 400


def test_profile_and_preferences(signup):
    user, headers = signup('f@x.com', name='Fatima')
    r = client.get('/users/me', headers=headers)
    assert r.status_code == 200
    assert r.json()['name'] == 'Fatima'
    r2 = client.patch('/users/me/preferences', json={'locationServices': True, 'categories': ['AI']},
                      headers=headers)
    assert r2.status_code == 200
    prefs = r2.json()['preferences']
    assert prefs['locationServices'] is True
    assert prefs['categories'] == ['AI']
    assert prefs['notifications'] is True


def test_settings_require_jwt_secret(monkeypatch):
    monkeypatch.delenv('JWT_SECRET', raising=False)
    with pytest.raises(RuntimeError):
        Settings()
    monkeypatch.setenv('JWT_SECRET', '   ')
    with pytest.raises(RuntimeError):
        Settings()


def test_health():
    assert client.get('/health').json() == {'status': 'ok'}
