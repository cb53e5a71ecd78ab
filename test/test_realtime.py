"""
WebSocket notification channel.
"""
import json
from datetime import datetime, timedelta

import pytest
from starlette.websockets import WebSocketDisconnect, WebSocketState

import config
from database.models import Department, UserRole, Session as DBSession
from services.auth_service import AuthService


def test_handshake_without_cookie_is_refused(client):
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(config.WEBSOCKET_PATH):
            pass
    assert exc_info.value.code == 1008


def test_handshake_with_invalid_cookie_is_refused(client):
    headers = {'Cookie': f'{config.SESSION_COOKIE_NAME}=forged'}
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(config.WEBSOCKET_PATH, headers=headers):
            pass


def test_handshake_after_logout_is_refused(client, student):
    client.post('/api/auth/logout', headers=student['headers'])
    client.cookies.clear()
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']):
            pass


def test_staff_receive_alerts_for_their_department_only(client, student, medical_staff, security_staff):
    with client.websocket_connect(config.WEBSOCKET_PATH, headers=medical_staff['headers']) as medical_ws, \
            client.websocket_connect(config.WEBSOCKET_PATH, headers=security_staff['headers']) as security_ws:
        medical_alert = client.post('/api/alerts', json={'department': 'medical'}, headers=student['headers']).json()
        security_alert = client.post('/api/alerts', json={'department': 'security'}, headers=student['headers']).json()

        medical_event = medical_ws.receive_json()
        security_event = security_ws.receive_json()

    assert medical_event['type'] == 'new_alert'
    assert medical_event['alertId'] == medical_alert['id']
    assert medical_event['department'] == 'medical'
    assert medical_event['alert']['status'] == 'pending'
    # first event each socket sees is its own department's alert
    assert security_event['alertId'] == security_alert['id']


def test_student_is_told_about_status_changes(client, student, medical_staff):
    alert = client.post('/api/alerts', json={'department': 'medical'}, headers=student['headers']).json()

    with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']) as student_ws:
        client.patch(f"/api/alerts/{alert['id']}", json={'status': 'acknowledged'}, headers=medical_staff['headers'])
        event = student_ws.receive_json()

    assert event == {'type': 'alert_updated', 'alertId': alert['id'], 'status': 'acknowledged'}


def test_chat_message_payload_is_masked_per_recipient(client, student, guidance_staff):
    session = client.post('/api/chats/sessions', json={'department': 'guidance'}, headers=student['headers']).json()

    with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']) as student_ws, \
            client.websocket_connect(config.WEBSOCKET_PATH, headers=guidance_staff['headers']) as staff_ws:
        client.post('/api/chats/messages', json={'sessionId': session['id'], 'content': 'help'}, headers=student['headers'])
        student_event = student_ws.receive_json()
        staff_event = staff_ws.receive_json()

    assert student_event['type'] == staff_event['type'] == 'chat_message'
    assert student_event['sessionId'] == session['id']
    assert student_event['message']['senderId'] == student['id']
    assert staff_event['message']['senderId'] is None
    assert staff_event['message']['content'] == 'help'


def test_connections_are_unregistered_on_disconnect(client, student):
    registry = client.app.state.connections
    with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']):
        assert client.get('/health').json()['checks']['websocket']['connections'] == 1
    assert registry.connection_count(student['id']) == 0


def test_binary_frames_are_ignored(client, student, medical_staff):
    alert = client.post('/api/alerts', json={'department': 'medical'}, headers=student['headers']).json()

    with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']) as student_ws:
        student_ws.send_bytes(b'\x00\x01')
        student_ws.send_text('ping')
        client.patch(f"/api/alerts/{alert['id']}", json={'status': 'dispatched'}, headers=medical_staff['headers'])
        event = student_ws.receive_json()

    assert event == {'type': 'alert_updated', 'alertId': alert['id'], 'status': 'dispatched'}


def test_expired_session_is_refused_everywhere(client, student, login):
    second_headers = login('student1@campus.edu')
    with config.db.get_session() as db:
        for session in db.query(DBSession).filter(DBSession.user_id == student['id']):
            session.expires_at = datetime.utcnow() - timedelta(minutes=1)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(config.WEBSOCKET_PATH, headers=student['headers']):
            pass
    assert exc_info.value.code == 1008
    assert client.get('/api/auth/me', headers=second_headers).status_code == 401


class RecordingConnection:
    client_state = WebSocketState.CONNECTED
    application_state = WebSocketState.CONNECTED

    def __init__(self):
        self.sent = []

    async def send_text(self, data):
        self.sent.append(json.loads(data))

    async def close(self, code=1000):
        pass


def test_inactive_staff_get_no_new_alerts(client, make_user, student, medical_staff):
    disabled_id = make_user(
        'former.medic@campus.edu', role=UserRole.STAFF, department=Department.MEDICAL, is_active=False
    )
    registry = client.app.state.connections
    active, disabled = RecordingConnection(), RecordingConnection()
    registry.register(medical_staff['id'], active)
    registry.register(disabled_id, disabled)

    alert = client.post('/api/alerts', json={'department': 'medical'}, headers=student['headers']).json()

    assert [event['alertId'] for event in active.sent] == [alert['id']]
    assert disabled.sent == []


def test_notification_failure_does_not_fail_the_request(client, student, monkeypatch):
    def broken_lookup(db, department):
        raise RuntimeError('staff directory unavailable')

    monkeypatch.setattr(AuthService, 'list_department_staff', broken_lookup)

    response = client.post('/api/alerts', json={'department': 'security'}, headers=student['headers'])
    assert response.status_code == 200

    mine = client.get('/api/alerts/my-alerts', headers=student['headers']).json()
    assert [a['id'] for a in mine] == [response.json()['id']]
