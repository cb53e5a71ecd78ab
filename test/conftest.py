"""
Campus Safety API - Test Configuration and Fixtures
"""
import os

# Set testing environment before the application modules read it
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECRET_KEY'] = 'test-secret-key-for-testing-only'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['LOG_FILE'] = ''
os.environ['ENVIRONMENT'] = 'testing'

import pytest
from fastapi.testclient import TestClient

import config
from app import app
from database.models import UserRole, Department
from services.auth_service import AuthService


@pytest.fixture
def client():
    """Test client with a fresh in-memory database (created by the app lifespan)."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_user(client):
    """Factory creating a user directly in the database. Returns the user id."""
    def _make_user(
        email: str,
        password: str = 'password123',
        role: UserRole = UserRole.STUDENT,
        department: Department = Department.NONE,
        is_active: bool = True,
    ) -> str:
        with config.db.get_session() as db:
            user = AuthService.create_user(
                db=db,
                email=email,
                password=password,
                role=role,
                department=department,
                full_name=email.split('@')[0],
                is_active=is_active,
            )
            return user.id
    return _make_user


@pytest.fixture
def login(client):
    """Log in and return headers carrying the session cookie.

    The client's cookie jar is cleared so each request only carries the
    cookie it is given explicitly.
    """
    def _login(email: str, password: str = 'password123') -> dict:
        response = client.post('/api/auth/login', json={'email': email, 'password': password})
        assert response.status_code == 200, response.text
        cookie = response.cookies.get(config.SESSION_COOKIE_NAME)
        client.cookies.clear()
        return {'Cookie': f'{config.SESSION_COOKIE_NAME}={cookie}'}
    return _login


@pytest.fixture
def student(make_user, login):
    user_id = make_user('student1@campus.edu')
    return {'id': user_id, 'headers': login('student1@campus.edu')}


@pytest.fixture
def other_student(make_user, login):
    user_id = make_user('student2@campus.edu')
    return {'id': user_id, 'headers': login('student2@campus.edu')}


@pytest.fixture
def medical_staff(make_user, login):
    user_id = make_user('medical.staff@campus.edu', role=UserRole.STAFF, department=Department.MEDICAL)
    return {'id': user_id, 'headers': login('medical.staff@campus.edu')}


@pytest.fixture
def security_staff(make_user, login):
    user_id = make_user('security.staff@campus.edu', role=UserRole.STAFF, department=Department.SECURITY)
    return {'id': user_id, 'headers': login('security.staff@campus.edu')}


@pytest.fixture
def guidance_staff(make_user, login):
    user_id = make_user('guidance.staff@campus.edu', role=UserRole.STAFF, department=Department.GUIDANCE)
    return {'id': user_id, 'headers': login('guidance.staff@campus.edu')}


@pytest.fixture
def admin(make_user, login):
    user_id = make_user('admin@campus.edu', role=UserRole.ADMIN)
    return {'id': user_id, 'headers': login('admin@campus.edu')}
