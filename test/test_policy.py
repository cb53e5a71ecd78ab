"""
Authorization policy, checked without routing or a database.
"""
import pytest

from auth.policy import authorize, ensure_authorized, is_department_member
from core.exceptions import ForbiddenError
from database.models import Alert, ChatSession, Department, User, UserRole


def make_user(user_id, role, department=Department.NONE, is_active=True):
    return User(id=user_id, email=f'{user_id}@campus.edu', role=role, department=department, is_active=is_active)


@pytest.fixture
def student():
    return make_user('s1', UserRole.STUDENT)


@pytest.fixture
def medical():
    return make_user('m1', UserRole.STAFF, Department.MEDICAL)


@pytest.fixture
def security():
    return make_user('x1', UserRole.STAFF, Department.SECURITY)


@pytest.fixture
def admin():
    return make_user('a1', UserRole.ADMIN)


def test_department_member_requires_matching_staff(student, medical, admin):
    assert is_department_member(medical, Department.MEDICAL)
    assert is_department_member(medical, 'medical')
    assert not is_department_member(medical, Department.SECURITY)
    assert not is_department_member(student, Department.MEDICAL)
    # admins manage every department but are not members of any
    assert not is_department_member(admin, Department.MEDICAL)


def test_staff_without_department_is_member_of_nothing():
    orphan = make_user('o1', UserRole.STAFF, Department.NONE)
    assert not is_department_member(orphan, Department.NONE)
    assert not authorize(orphan, 'none')


def test_department_listing(student, medical, security, admin):
    assert authorize(medical, 'medical')
    assert not authorize(medical, 'security')
    assert authorize(security, Department.SECURITY)
    assert authorize(admin, 'guidance')
    assert not authorize(student, 'medical')


def test_alert_access(student, medical, security, admin):
    alert = Alert(id='al1', user_id=student.id, department=Department.MEDICAL)
    assert authorize(student, alert)
    assert authorize(medical, alert)
    assert authorize(admin, alert)
    assert not authorize(security, alert)
    assert not authorize(make_user('s2', UserRole.STUDENT), alert)


def test_chat_session_access(student, medical, security, admin):
    session = ChatSession(id='c1', user_id=student.id, department=Department.SECURITY, anonymous_id='User#ABC123')
    assert authorize(student, session)
    assert authorize(security, session)
    assert authorize(admin, session)
    assert not authorize(medical, session)


def test_inactive_actor_is_denied(student):
    alert = Alert(id='al1', user_id=student.id, department=Department.MEDICAL)
    disabled_admin = make_user('a2', UserRole.ADMIN, is_active=False)
    assert not authorize(disabled_admin, alert)
    assert not authorize(None, 'medical')


def test_ensure_authorized_raises_forbidden(security):
    alert = Alert(id='al1', user_id='s1', department=Department.MEDICAL)
    with pytest.raises(ForbiddenError) as exc_info:
        ensure_authorized(security, alert, 'Forbidden - wrong department')
    assert exc_info.value.status_code == 403
    assert exc_info.value.message == 'Forbidden - wrong department'


def test_unknown_resource_type(admin):
    with pytest.raises(TypeError):
        authorize(admin, 42)
