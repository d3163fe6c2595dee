import pytest


def test_create_room(http):
    response = http.post("/api/rooms", json={"title": "Pairing round", "createdBy": "Sam"})
    assert response.status_code == 200
    body = response.get_json()
    assert body['code'] == body['room']['code']
    assert body['room']['title'] == "Pairing round"


@pytest.mark.parametrize("payload", [{"title": "No creator"}, {"createdBy": "Sam"}, ["x"], None])
def test_create_room_rejects_invalid_data(http, payload):
    response = http.post("/api/rooms", json=payload)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid room data"}


def test_join_room_returns_snapshot(http, room):
    response = http.post(f"/api/rooms/{room['code']}/join", json={"name": "Ann", "role": "candidate"})
    assert response.status_code == 200
    body = response.get_json()
    assert body['room']['id'] == room['id']
    assert set(body['participant']) == {"id", "name", "role", "roomId"}
    assert body['participant']['roomId'] == room['id']
    assert [p['name'] for p in body['participants']] == ["Ann"]
    assert body['messages'] == []
    assert body['codeState']['version'] == 0


@pytest.mark.parametrize("payload, error", [
    ({"name": "Ann"}, "Name and role are required"),
    ({"role": "candidate"}, "Name and role are required"),
    ({"name": "Ann", "role": "observer"}, "Role must be 'interviewer' or 'candidate'"),
])
def test_join_room_validation(http, room, payload, error):
    response = http.post(f"/api/rooms/{room['code']}/join", json=payload)
    assert response.status_code == 400
    assert response.get_json() == {"error": error}


def test_join_unknown_room(http):
    response = http.post("/api/rooms/000000/join", json={"name": "Ann", "role": "candidate"})
    assert response.status_code == 404
    assert response.get_json() == {"error": "Room not found"}


def test_join_second_candidate_rejected(http, room, join):
    join("Ann", "candidate")
    join("Ivan", "interviewer")
    join("Ines", "interviewer")

    response = http.post(f"/api/rooms/{room['code']}/join", json={"name": "Bob", "role": "candidate"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "This room already has a candidate"}


def test_get_room_snapshot(http, room, join):
    join("Ann", "candidate")
    response = http.get(f"/api/rooms/{room['id']}")
    assert response.status_code == 200
    body = response.get_json()
    assert body['room']['code'] == room['code']
    assert len(body['participants']) == 1
    assert 'codeState' in body


def test_get_unknown_room(http):
    response = http.get("/api/rooms/nope")
    assert response.status_code == 404
    assert response.get_json() == {"error": "Room not found"}


def test_list_rooms_and_active_rooms(http, room):
    other = http.post("/api/rooms", json={"title": "Second", "createdBy": "Sam"}).get_json()['room']
    assert http.post(f"/api/rooms/{room['id']}/close").status_code == 200

    all_rooms = http.get("/api/rooms").get_json()
    assert {r['id'] for r in all_rooms} == {room['id'], other['id']}
    active = http.get("/api/rooms/active").get_json()
    assert [r['id'] for r in active] == [other['id']]


def test_closed_room_cannot_be_joined(http, room):
    http.post(f"/api/rooms/{room['id']}/close")
    response = http.post(f"/api/rooms/{room['code']}/join", json={"name": "Ann", "role": "candidate"})
    assert response.status_code == 400
    assert response.get_json() == {"error": "Room is no longer active"}


def test_close_unknown_room(http):
    response = http.post("/api/rooms/nope/close")
    assert response.status_code == 404


def test_report_violation(http, room, join):
    candidate = join("Ann", "candidate")
    response = http.post("/api/violations", json={
        "type": "looking_away",
        "roomId": room['id'],
        "participantId": candidate['id'],
        "timestamp": 1_700_000_000_000,
        "confidence": 0.7,
        "description": "Looking away from screen",
    })
    assert response.status_code == 200
    assert response.get_json() == {"success": True}

    body = http.get(f"/api/rooms/{room['id']}/violations").get_json()
    assert len(body['violations']) == 1
    assert body['violations'][0]['participantId'] == candidate['id']
    assert body['summary']['total'] == 1

    filtered = http.get(f"/api/rooms/{room['id']}/violations?participantId=someone-else").get_json()
    assert filtered['violations'] == []


@pytest.mark.parametrize("payload", [None, {"type": "yawning"}, {"type": "face_absent", "roomId": "nope"}])
def test_report_violation_rejects_bad_reports(http, payload):
    response = http.post("/api/violations", json=payload)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Failed to report violation"}


def test_violations_for_unknown_room(http):
    assert http.get("/api/rooms/nope/violations").status_code == 404


def test_health(http, room):
    body = http.get("/api/health").get_json()
    assert body['status'] == "ok"
    assert body['rooms'] == 1
    assert body['connections'] == 0
    assert 'timestamp' in body


def test_unknown_api_route_returns_json(http):
    response = http.get("/api/nothing-here")
    assert response.status_code == 404
    assert 'error' in response.get_json()


def test_cors_headers(http):
    response = http.get("/api/health", headers={"Origin": "http://example.com"})
    assert response.headers['Access-Control-Allow-Origin'] == "*"


@pytest.mark.parametrize("field, value", [
    ("timestamp", float("inf")),
    ("timestamp", float("nan")),
    ("confidence", float("nan")),
    ("confidence", 42),
])
def test_report_violation_rejects_out_of_range_numbers(http, room, field, value):
    report = {"type": "face_absent", "roomId": room['id'], "timestamp": 1_700_000_000_000, "confidence": 0.5}
    report[field] = value
    response = http.post("/api/violations", json=report)
    assert response.status_code == 400
    assert response.get_json() == {"error": "Failed to report violation"}
    assert http.get(f"/api/rooms/{room['id']}/violations").get_json()['violations'] == []
