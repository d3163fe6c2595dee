import logging
import time
from flask import Blueprint, current_app, g, jsonify, request
from ..state import store, utcnow, StoreError, ValidationError
from ..sockets.registry import registry
from ..sockets.socketio import socketio


logger = logging.getLogger(__name__)

bp = Blueprint('api', __name__, url_prefix='/api')

LOG_LINE_LIMIT = 80


@bp.before_request
def start_timer():
    g.request_started = time.monotonic()


@bp.after_request
def log_request(response):
    duration = int((time.monotonic() - g.get('request_started', time.monotonic())) * 1000)
    line = f"{request.method} {request.path} {response.status_code} in {duration}ms"
    if response.is_json:
        line += f" :: {response.get_data(as_text=True).strip()}"
    if len(line) > LOG_LINE_LIMIT:
        line = line[:LOG_LINE_LIMIT - 1] + "…"
    logger.info("[API] %s", line)
    return response


@bp.errorhandler(StoreError)
def handle_store_error(e):
    return jsonify({"error": e.message}), e.status_code


def json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


@bp.route("/rooms", methods=["POST"])
def create_room():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return {"error": "Invalid room data"}, 400
    try:
        room = store.create_room(data.get("title"), data.get("createdBy"))
    except ValidationError:
        return {"error": "Invalid room data"}, 400
    return {"room": room, "code": room['code']}


@bp.route("/rooms", methods=["GET"])
def list_rooms():
    return jsonify(store.list_rooms())


@bp.route("/rooms/active", methods=["GET"])
def list_active_rooms():
    return jsonify(store.list_active_rooms())


@bp.route("/rooms/<room_id>", methods=["GET"])
def get_room(room_id):
    return store.snapshot(room_id)


@bp.route("/rooms/<code>/join", methods=["POST"])
def join_room(code):
    data = request.get_json(silent=True) or {}
    name = data.get("name") if isinstance(data, dict) else None
    role = data.get("role") if isinstance(data, dict) else None

    if not name or not role:
        return {"error": "Name and role are required"}, 400
    if role not in ("interviewer", "candidate"):
        return {"error": "Role must be 'interviewer' or 'candidate'"}, 400

    room = store.get_room_by_code(code)
    if not room:
        return {"error": "Room not found"}, 404

    participant = store.add_participant(room['id'], name, role)
    snapshot = store.snapshot(room['id'])
    snapshot['participant'] = {
        "id": participant['id'],
        "name": participant['name'],
        "role": participant['role'],
        "roomId": room['id'],
    }
    return snapshot


@bp.route("/rooms/<room_id>/close", methods=["POST"])
def close_room(room_id):
    room = store.close_room(room_id)
    socketio.emit("room-closed", {"roomId": room_id}, to=room_id)
    logger.info("[API] Room %s closed", room_id)
    return {"room": room}


@bp.route("/violations", methods=["POST"])
def report_violation():
    try:
        violation = store.record_violation(json_body())
    except StoreError as e:
        logger.warning("[API] Rejected violation report: %s", e.message)
        return {"error": "Failed to report violation"}, 400
    logger.info("[API] Face analysis violation reported: type=%s room=%s participant=%s confidence=%.2f",
                violation['type'], violation['roomId'], violation['participantId'], violation['confidence'])
    return {"success": True}


@bp.route("/rooms/<room_id>/violations", methods=["GET"])
def room_violations(room_id):
    if not store.get_room(room_id):
        return {"error": "Room not found"}, 404
    participant_id = request.args.get("participantId")
    return {
        "violations": store.get_violations(room_id, participant_id),
        "summary": store.violation_summary(room_id, participant_id),
    }


@bp.route("/health")
def health():
    return {
        "status": "ok",
        "timestamp": utcnow(),
        "env": current_app.config['APP_ENV'],
        "rooms": len(store.list_active_rooms()),
        "connections": registry.count(),
    }
