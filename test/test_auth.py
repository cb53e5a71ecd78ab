"""
Authentication endpoints and the access-control middleware.
"""
import config


def test_unauthenticated_api_request_is_rejected(client):
    response = client.get('/api/alerts/my-alerts')
    assert response.status_code == 401
    assert response.json() == {'detail': 'Unauthorized'}


def test_public_endpoints_need_no_session(client):
    assert client.get('/').status_code == 200
    health = client.get('/health')
    assert health.status_code == 200
    assert health.json()['checks']['database'] == {'status': 'ok'}


def test_tampered_cookie_is_rejected(client, student):
    forged = {'Cookie': f'{config.SESSION_COOKIE_NAME}=not-a-valid-token'}
    assert client.get('/api/auth/me', headers=forged).status_code == 401


def test_login_sets_http_only_cookie(client, make_user):
    make_user('student1@campus.edu')
    response = client.post('/api/auth/login', json={'email': 'student1@campus.edu', 'password': 'password123'})

    assert response.status_code == 200
    user = response.json()['user']
    assert user['email'] == 'student1@campus.edu'
    assert user['role'] == 'student'
    assert user['lastLogin'] is not None
    assert 'hashed_password' not in user and 'password' not in user

    set_cookie = response.headers['set-cookie']
    assert set_cookie.startswith(f'{config.SESSION_COOKIE_NAME}=')
    assert 'HttpOnly' in set_cookie
    assert 'samesite=lax' in set_cookie.lower()


def test_login_email_is_case_insensitive(client, make_user):
    make_user('student1@campus.edu')
    response = client.post('/api/auth/login', json={'email': 'Student1@Campus.edu', 'password': 'password123'})
    assert response.status_code == 200


def test_login_bad_credentials(client, make_user):
    make_user('student1@campus.edu')
    wrong_password = client.post('/api/auth/login', json={'email': 'student1@campus.edu', 'password': 'nope12345'})
    unknown = client.post('/api/auth/login', json={'email': 'ghost@campus.edu', 'password': 'password123'})

    assert wrong_password.status_code == 401
    assert unknown.status_code == 401
    assert wrong_password.json()['detail'] == 'Invalid email or password'


def test_login_inactive_account(client, make_user):
    make_user('student1@campus.edu', is_active=False)
    response = client.post('/api/auth/login', json={'email': 'student1@campus.edu', 'password': 'password123'})
    assert response.status_code == 403


def test_me_returns_current_user(client, student):
    response = client.get('/api/auth/me', headers=student['headers'])
    assert response.status_code == 200
    assert response.json()['user']['id'] == student['id']


def test_register_creates_logged_in_student(client):
    response = client.post('/api/auth/register', json={
        'email': 'new.student@campus.edu',
        'password': 'secret1',
        'fullName': 'New Student',
    })
    assert response.status_code == 200
    user = response.json()['user']
    assert user['role'] == 'student'
    assert user['department'] == 'none'

    cookie = response.cookies.get(config.SESSION_COOKIE_NAME)
    client.cookies.clear()
    me = client.get('/api/auth/me', headers={'Cookie': f'{config.SESSION_COOKIE_NAME}={cookie}'})
    assert me.status_code == 200
    assert me.json()['user']['email'] == 'new.student@campus.edu'


def test_register_requires_campus_email(client):
    response = client.post('/api/auth/register', json={
        'email': 'someone@gmail.com',
        'password': 'secret1',
        'fullName': 'Outsider',
    })
    assert response.status_code == 400
    assert 'campus.edu' in response.json()['detail']


def test_register_rejects_short_password(client):
    response = client.post('/api/auth/register', json={
        'email': 'short@campus.edu',
        'password': '123',
        'fullName': 'Short',
    })
    assert response.status_code == 400


def test_register_duplicate_email(client, make_user):
    make_user('student1@campus.edu')
    response = client.post('/api/auth/register', json={
        'email': 'student1@campus.edu',
        'password': 'secret1',
        'fullName': 'Again',
    })
    assert response.status_code == 400
    assert response.json()['detail'] == 'Email already registered'


def test_malformed_payload_is_400(client):
    response = client.post('/api/auth/login', json={'email': 'not-an-email'})
    assert response.status_code == 400


def test_logout_revokes_session(client, student):
    response = client.post('/api/auth/logout', headers=student['headers'])
    assert response.status_code == 200
    client.cookies.clear()

    assert client.get('/api/auth/me', headers=student['headers']).status_code == 401


def test_logout_without_session_is_ok(client):
    assert client.post('/api/auth/logout').status_code == 200


def test_disabled_user_loses_existing_session(client, student, admin):
    response = client.patch(f"/api/admin/users/{student['id']}", json={'isActive': False}, headers=admin['headers'])
    assert response.status_code == 200
    assert response.json()['isActive'] is False

    assert client.get('/api/auth/me', headers=student['headers']).status_code == 401
