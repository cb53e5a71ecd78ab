"""
Admin statistics and account management.
"""
import config
from database.models import Alert, ChatSession, Message, User


def test_admin_routes_require_admin(client, student, medical_staff):
    for user in (student, medical_staff):
        assert client.get('/api/admin/stats', headers=user['headers']).status_code == 403
        assert client.get('/api/admin/users', headers=user['headers']).status_code == 403


def test_stats_summary(client, student, medical_staff, admin):
    headers = student['headers']
    first = client.post('/api/alerts', json={'department': 'medical'}, headers=headers).json()
    client.post('/api/alerts', json={'department': 'security'}, headers=headers)
    client.post('/api/chats/sessions', json={'department': 'guidance'}, headers=headers)
    client.patch(f"/api/alerts/{first['id']}", json={'status': 'acknowledged'}, headers=medical_staff['headers'])

    stats = client.get('/api/admin/stats', headers=admin['headers']).json()

    assert stats['totalUsers'] == 3
    assert stats['activeUsers'] == 3
    assert stats['totalAlerts'] == 2
    assert stats['pendingAlerts'] == 1
    assert stats['totalChats'] == 1
    assert stats['activeChats'] == 1
    assert stats['alertsByDepartment'] == {'medical': 1, 'security': 1}
    assert stats['alertsByStatus'] == {'pending': 1, 'acknowledged': 1, 'dispatched': 0, 'resolved': 0}
    assert stats['usersByRole'] == {'student': 1, 'staff': 1, 'admin': 1}
    assert stats['chatsByDepartment'] == {'medical': 0, 'security': 0, 'guidance': 1}
    assert stats['avgResponseTime'] >= 0


def test_stats_without_acknowledged_alerts(client, admin):
    stats = client.get('/api/admin/stats', headers=admin['headers']).json()
    assert stats['avgResponseTime'] is None
    assert stats['totalAlerts'] == 0


def test_create_staff_user(client, admin):
    response = client.post('/api/admin/users', json={
        'email': 'nurse@campus.edu',
        'password': 'nurse123',
        'role': 'staff',
        'department': 'medical',
        'fullName': 'Campus Nurse',
    }, headers=admin['headers'])

    assert response.status_code == 201
    created = response.json()
    assert created['role'] == 'staff'
    assert created['department'] == 'medical'

    emails = [u['email'] for u in client.get('/api/admin/users', headers=admin['headers']).json()]
    assert 'nurse@campus.edu' in emails


def test_create_user_validation(client, admin, student):
    duplicate = client.post('/api/admin/users', json={
        'email': 'student1@campus.edu', 'password': 'another1',
    }, headers=admin['headers'])
    staff_without_department = client.post('/api/admin/users', json={
        'email': 'staff@campus.edu', 'password': 'staff123', 'role': 'staff',
    }, headers=admin['headers'])

    assert duplicate.status_code == 409
    assert staff_without_department.status_code == 400


def test_admin_cannot_delete_self(client, admin):
    response = client.delete(f"/api/admin/users/{admin['id']}", headers=admin['headers'])
    assert response.status_code == 400

    with config.db.get_session() as db:
        assert db.query(User).filter(User.id == admin['id']).count() == 1


def test_admin_cannot_disable_self(client, admin):
    response = client.patch(f"/api/admin/users/{admin['id']}", json={'isActive': False}, headers=admin['headers'])
    assert response.status_code == 400


def test_delete_missing_user(client, admin):
    assert client.delete('/api/admin/users/missing', headers=admin['headers']).status_code == 404


def test_delete_user_removes_owned_records(client, student, guidance_staff, admin):
    headers = student['headers']
    client.post('/api/alerts', json={'department': 'medical'}, headers=headers)
    session = client.post('/api/chats/sessions', json={'department': 'guidance'}, headers=headers).json()
    client.post('/api/chats/messages', json={'sessionId': session['id'], 'content': 'hi'}, headers=headers)
    client.post('/api/chats/messages', json={'sessionId': session['id'], 'content': 'hello'}, headers=guidance_staff['headers'])

    response = client.delete(f"/api/admin/users/{student['id']}", headers=admin['headers'])
    assert response.status_code == 200
    assert response.json()['user']['email'] == 'student1@campus.edu'

    with config.db.get_session() as db:
        assert db.query(User).filter(User.id == student['id']).count() == 0
        assert db.query(Alert).count() == 0
        assert db.query(ChatSession).count() == 0
        assert db.query(Message).count() == 0

    assert client.get('/api/auth/me', headers=headers).status_code == 401


def test_admin_changes_are_audited(client, admin, student):
    client.patch(f"/api/admin/users/{student['id']}", json={'isActive': False}, headers=admin['headers'])
    logs = client.get('/api/admin/audit-logs', headers=admin['headers']).json()

    disable = [log for log in logs if log['action'] == 'user_disable']
    assert len(disable) == 1
    assert disable[0]['userId'] == admin['id']
    assert disable[0]['targetId'] == student['id']


def test_locations(client, admin, student):
    created = client.post('/api/admin/locations', json={
        'buildingName': 'Science Hall', 'buildingCode': 'SCI', 'latitude': '40.71', 'longitude': '-74.0',
    }, headers=admin['headers'])
    assert created.status_code == 201
    client.post('/api/admin/locations', json={'buildingName': 'Art Center'}, headers=admin['headers'])

    names = [loc['buildingName'] for loc in client.get('/api/locations', headers=student['headers']).json()]
    assert names == ['Art Center', 'Science Hall']

    bad = client.post('/api/admin/locations', json={'buildingName': 'Moon Base', 'latitude': 95}, headers=admin['headers'])
    assert bad.status_code == 400
