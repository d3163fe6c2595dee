import logging
from functools import wraps
from flask import request
from .registry import registry
from .socketio import socketio
from ..state import StoreError


logger = logging.getLogger(__name__)


def reply_error(message):
    socketio.emit("error", {"message": message}, to=request.sid)


def to_room(event, payload, room_id, skip=None):
    socketio.emit(event, payload, to=room_id, skip_sid=skip)


def to_participant(event, payload, room_id, participant_id):
    sids = registry.sids_for(room_id, participant_id)
    for sid in sids:
        socketio.emit(event, payload, to=sid)
    return len(sids)


def room_event(handler):
    """Calls ``handler(binding, data)`` for joined sockets only."""
    @wraps(handler)
    def wrapper(data=None):
        binding = registry.get(request.sid)
        if binding is None:
            reply_error("Join a room first")
            return
        if data is None:
            data = {}
        if not isinstance(data, dict):
            reply_error("Malformed message")
            return
        try:
            handler(binding, data)
        except StoreError as e:
            logger.info("[WS] %s rejected for %s: %s", handler.__name__, binding['participantId'], e.message)
            reply_error(e.message)
    return wrapper
