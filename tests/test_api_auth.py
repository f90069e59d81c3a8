"""Tests for registration, login and route protection."""

from fastapi.testclient import TestClient

from main import create_app


def test_register_returns_user(client):
    """Test registration returns the public user record."""
    response = client.post('/api/register', json={'username': 'alice', 'password': 'secret'})

    assert response.status_code == 201
    body = response.json()
    assert body['username'] == 'alice'
    assert 'createdAt' in body
    assert 'hashedPassword' not in body
    assert 'password' not in body


def test_register_duplicate_rejected(client):
    """Test a taken username cannot be registered again."""
    credentials = {'username': 'alice', 'password': 'secret'}
    client.post('/api/register', json=credentials)

    response = client.post('/api/register', json=credentials)

    assert response.status_code == 400


def test_login_wrong_password(client):
    """Test bad credentials are refused."""
    client.post('/api/register', json={'username': 'alice', 'password': 'secret'})

    response = client.post('/api/login', json={'username': 'alice', 'password': 'wrong'})

    assert response.status_code == 401


def test_login_unknown_user(client):
    response = client.post('/api/login', json={'username': 'ghost', 'password': 'x'})

    assert response.status_code == 401


def test_token_form_login(client):
    """Test the OAuth2 form endpoint issues a working token."""
    client.post('/api/register', json={'username': 'alice', 'password': 'secret'})

    response = client.post('/api/token', data={'username': 'alice', 'password': 'secret'})
    token = response.json()['access_token']
    me = client.get('/api/user', headers={'Authorization': f'Bearer {token}'})

    assert response.status_code == 200
    assert me.json()['username'] == 'alice'


def test_current_user(client, auth_headers):
    response = client.get('/api/user', headers=auth_headers)

    assert response.status_code == 200
    assert response.json()['username'] == 'testuser'


def test_protected_routes_require_token(client):
    """Test file and storage routes answer 401 without a session."""
    assert client.get('/api/files').status_code == 401
    assert client.get('/api/storage').status_code == 401
    assert client.post('/api/files', json={'name': 'Docs', 'isFolder': True}).status_code == 401


def test_invalid_token_rejected(client):
    response = client.get('/api/files', headers={'Authorization': 'Bearer not-a-jwt'})

    assert response.status_code == 401


def test_auth_optional_when_disabled(app_settings):
    """Test anonymous access works when AUTH_REQUIRED is off."""
    app_settings.AUTH_REQUIRED = False
    with TestClient(create_app(app_settings)) as client:
        created = client.post('/api/files', json={'name': 'Docs', 'isFolder': True})
        listing = client.get('/api/files')

    assert created.status_code == 200
    assert created.json()['ownerId'] is None
    assert [n['name'] for n in listing.json()] == ['Docs']
