import pytest

from jobillo import create_app
from jobillo.sockets.registry import registry
from jobillo.sockets.socketio import socketio
from jobillo.state import store


@pytest.fixture
def app():
    store.clear()
    registry.clear()
    app = create_app({'TESTING': True, 'LOG_LEVEL': 'WARNING', 'MAX_MESSAGE_LENGTH': 50})
    yield app
    store.clear()
    registry.clear()


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def room(http):
    response = http.post("/api/rooms", json={"title": "Backend interview", "createdBy": "Sam"})
    assert response.status_code == 200
    return response.get_json()['room']


@pytest.fixture
def join(http, room):
    def _join(name, role="interviewer"):
        response = http.post(f"/api/rooms/{room['code']}/join", json={"name": name, "role": role})
        assert response.status_code == 200, response.get_json()
        return response.get_json()['participant']
    return _join


@pytest.fixture
def connect(app, http, room):
    """Open a socket for a participant and join the room with it."""
    clients = []

    def _connect(participant):
        client = socketio.test_client(app, flask_test_client=http)
        client.emit("join-room", {"roomId": room['id'], "participantId": participant['id']})
        client.get_received()
        clients.append(client)
        return client

    yield _connect
    for client in clients:
        if client.is_connected():
            client.disconnect()


@pytest.fixture
def received():
    """Drain a client's queue and return the payloads of one event."""
    def _received(client, name):
        return [packet['args'][0] for packet in client.get_received() if packet['name'] == name]
    return _received
