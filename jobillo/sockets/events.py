import logging
from flask import current_app, request
from flask_socketio import join_room, leave_room
from .socketio import socketio
from .registry import registry
from .relay import reply_error, room_event, to_participant, to_room
from ..state import store, now_ms


logger = logging.getLogger(__name__)

MEDIA_ACTIONS = ("mute-audio", "enable-audio", "disable-video", "enable-video")


@socketio.on("connect")
def handle_connect():
    logger.info("[WS] New connection %s", request.sid)
    socketio.emit("info", {"message": "Connected to server"}, to=request.sid)


@socketio.on("disconnect")
def handle_disconnect(*args):
    binding = registry.unbind(request.sid)
    logger.info("[WS] Connection closed %s", request.sid)
    if binding:
        _participant_gone(binding)


def _participant_gone(binding):
    room_id, participant_id = binding['roomId'], binding['participantId']
    if registry.sids_for(room_id, participant_id):
        return
    if store.get_participant(participant_id):
        store.set_connected(participant_id, False)
        store.set_speaking(participant_id, False)
        # a tab may have bound while the flags were being cleared
        if registry.sids_for(room_id, participant_id):
            store.set_connected(participant_id, True)
            return
    to_room("participant-left", {"participantId": participant_id}, room_id)


@socketio.on("join-room")
def handle_join_room(data=None):
    if not isinstance(data, dict):
        reply_error("Malformed message")
        return
    room_id = data.get("roomId")
    participant_id = data.get("participantId")

    room = store.get_room(room_id) if isinstance(room_id, str) else None
    if not room:
        reply_error("Room not found")
        return
    if not room['isActive']:
        reply_error("Room is no longer active")
        return
    participant = store.get_participant(participant_id) if isinstance(participant_id, str) else None
    if not participant or participant['roomId'] != room_id:
        reply_error("Participant not found in room")
        return

    previous = registry.get(request.sid)
    if previous and previous['roomId'] != room_id:
        leave_room(previous['roomId'])
    registry.bind(request.sid, room_id, participant_id)
    if previous and previous != {'roomId': room_id, 'participantId': participant_id}:
        _participant_gone(previous)
    join_room(room_id)
    participant = store.set_connected(participant_id, True)
    if isinstance(data.get("peerId"), str):
        participant = store.set_peer_id(participant_id, data["peerId"])
    logger.info("[WS] %s joined room %s", participant_id, room_id)

    to_room("participant-joined", {
        "participantId": participant_id,
        "participant": participant,
    }, room_id, skip=request.sid)

    socketio.emit("room-state", {
        "participants": store.get_participants(room_id),
        "codeState": store.get_code_state(room_id),
        "connected": registry.room_participants(room_id),
    }, to=request.sid)


@socketio.on("leave-room")
@room_event
def handle_leave_room(binding, data):
    registry.unbind(request.sid)
    leave_room(binding['roomId'])
    _participant_gone(binding)


@socketio.on("chat-message")
@room_event
def handle_chat_message(binding, data):
    content = data.get("content")
    if isinstance(content, str) and len(content) > current_app.config['MAX_MESSAGE_LENGTH']:
        reply_error("Message is too long")
        return
    message = store.add_message(
        binding['roomId'],
        binding['participantId'],
        content,
        data.get("messageType") or "text",
    )
    to_room("new-message", {"message": message}, binding['roomId'])


@socketio.on("code-change")
@room_event
def handle_code_change(binding, data):
    language = data.get("language")
    if language is not None and not isinstance(language, str):
        reply_error("Language must be a string")
        return
    accepted, code_state = store.apply_code_change(
        binding['roomId'],
        binding['participantId'],
        data.get("content"),
        language,
        data.get("version"),
    )
    if accepted:
        to_room("code-update", {"codeState": code_state}, binding['roomId'])
    else:
        logger.debug("[WS] Stale code change from %s (version %s < %s)",
                     binding['participantId'], data.get("version"), code_state['version'])
        socketio.emit("code-update", {"codeState": code_state, "conflict": True}, to=request.sid)


@socketio.on("webrtc-signal")
@room_event
def handle_webrtc_signal(binding, data):
    signal = data.get("signal")
    if signal is None:
        reply_error("Signal payload is required")
        return
    payload = {"signal": signal, "fromParticipantId": binding['participantId']}
    target = data.get("targetParticipantId")
    if isinstance(target, str) and target != binding['participantId']:
        if to_participant("webrtc-signal", payload, binding['roomId'], target):
            return
    to_room("webrtc-signal", payload, binding['roomId'], skip=request.sid)


@socketio.on("violation-alert")
@room_event
def handle_violation_alert(binding, data):
    violation = data.get("violation")
    if not isinstance(violation, dict):
        reply_error("Violation payload is required")
        return
    violation = store.record_violation(dict(
        violation,
        roomId=binding['roomId'],
        participantId=binding['participantId'],
    ))
    logger.warning("[WS] Violation %s in room %s by %s (confidence %.2f)",
                   violation['type'], binding['roomId'], binding['participantId'], violation['confidence'])
    own_sids = list(registry.sids_for(binding['roomId'], binding['participantId']))
    to_room("violation-detected", {
        "violation": violation,
        "participantId": binding['participantId'],
    }, binding['roomId'], skip=own_sids)


@socketio.on("voice-activity")
@room_event
def handle_voice_activity(binding, data):
    is_speaking = bool(data.get("isSpeaking"))
    store.set_speaking(binding['participantId'], is_speaking)
    to_room("voice-activity-update", {
        "participantId": binding['participantId'],
        "isSpeaking": is_speaking,
        "timestamp": now_ms(),
    }, binding['roomId'])


@socketio.on("media-status-update")
@room_event
def handle_media_status(binding, data):
    to_room("participant-media-status", {
        "participantId": binding['participantId'],
        "hasVideo": bool(data.get("hasVideo")),
        "hasAudio": bool(data.get("hasAudio")),
    }, binding['roomId'])


@socketio.on("request-video-switch")
@room_event
def handle_video_switch(binding, data):
    to_room("video-switch-requested", {
        "targetParticipantId": data.get("targetParticipantId"),
        "requestedBy": binding['participantId'],
    }, binding['roomId'])


@socketio.on("host-control-media")
@room_event
def handle_host_control(binding, data):
    sender = store.get_participant(binding['participantId'])
    if not sender or sender['role'] != "interviewer":
        reply_error("Only interviewers can control participant media")
        return
    action = data.get("action")
    if action not in MEDIA_ACTIONS:
        reply_error(f"Unknown media action '{action}'")
        return
    target = data.get("targetParticipantId")
    if not isinstance(target, str):
        reply_error("Target participant is required")
        return
    delivered = to_participant("media-control-command", {
        "action": action,
        "fromHost": binding['participantId'],
    }, binding['roomId'], target)
    if not delivered:
        reply_error("Participant is not connected")


@socketio.on_error_default
def handle_socket_error(e):
    logger.exception("[WS] Unhandled error for %s: %s", request.sid, e)
    reply_error("Server error")
