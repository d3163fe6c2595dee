import logging
import math
import random
import threading
import time
import uuid
from datetime import datetime, timezone


logger = logging.getLogger(__name__)

ROLES = ("interviewer", "candidate")
MESSAGE_TYPES = ("text", "code", "system")
VIOLATION_TYPES = ("multiple_faces", "face_absent", "looking_away", "suspicious_movement")

CODE_LENGTH = 6
MAX_VIOLATIONS_PER_ROOM = 100
RECENT_VIOLATION_WINDOW_MS = 5 * 60 * 1000

DEFAULT_LANGUAGE = "javascript"
DEFAULT_CODE = (
    "// Welcome to the collaborative coding interview!\n"
    "// Both interviewer and candidate can edit this code in real-time\n"
    "\n"
    "function fibonacci(n) {\n"
    "    if (n <= 1) {\n"
    "        return n;\n"
    "    }\n"
    "    return fibonacci(n - 1) + fibonacci(n - 2);\n"
    "}\n"
    "\n"
    "console.log(fibonacci(10));\n"
)


class StoreError(Exception):
    status_code = 400

    def __init__(self, message):
        super().__init__(message)
        self.message = message


class ValidationError(StoreError):
    status_code = 400


class NotFound(StoreError):
    status_code = 404


class Conflict(StoreError):
    status_code = 400


def utcnow():
    return datetime.now(timezone.utc).isoformat()


def now_ms():
    return int(time.time() * 1000)


def _is_number(value):
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def _required_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    return value.strip()


class RoomStore:
    def __init__(self):
        self._lock = threading.Lock()
        self.rooms = {}
        self.participants = {}
        self.messages = {}
        self.code_states = {}
        self.violations = {}

    def clear(self):
        with self._lock:
            self.rooms.clear()
            self.participants.clear()
            self.messages.clear()
            self.code_states.clear()
            self.violations.clear()

    # Rooms

    def _new_code(self):
        taken = {room['code'] for room in self.rooms.values()}
        while True:
            code = f"{random.randint(0, 10 ** CODE_LENGTH - 1):0{CODE_LENGTH}d}"
            if code not in taken:
                return code

    def create_room(self, title, created_by):
        title = _required_text(title, "title")
        created_by = _required_text(created_by, "createdBy")

        with self._lock:
            room_id = str(uuid.uuid4())
            room = {
                'id': room_id,
                'code': self._new_code(),
                'title': title,
                'createdBy': created_by,
                'isActive': True,
                'createdAt': utcnow(),
            }
            self.rooms[room_id] = room
            self.messages[room_id] = []
            self.violations[room_id] = []
            self.code_states[room_id] = {
                'roomId': room_id,
                'content': DEFAULT_CODE,
                'language': DEFAULT_LANGUAGE,
                'version': 0,
                'lastModifiedBy': None,
                'updatedAt': room['createdAt'],
            }
        logger.info("[STORE] Created room %s (code %s)", room_id, room['code'])
        return dict(room)

    def get_room(self, room_id):
        with self._lock:
            room = self.rooms.get(room_id)
            return dict(room) if room else None

    def get_room_by_code(self, code):
        code = (code or "").strip()
        with self._lock:
            for room in self.rooms.values():
                if room['code'] == code:
                    return dict(room)
        return None

    def list_rooms(self):
        with self._lock:
            rooms = [dict(room) for room in self.rooms.values()]
        return list(reversed(rooms))

    def list_active_rooms(self):
        return [room for room in self.list_rooms() if room['isActive']]

    def close_room(self, room_id):
        with self._lock:
            room = self.rooms.get(room_id)
            if not room:
                raise NotFound("Room not found")
            room['isActive'] = False
            return dict(room)

    # Participants

    def add_participant(self, room_id, name, role):
        name = _required_text(name, "name")
        if role not in ROLES:
            raise ValidationError("Role must be 'interviewer' or 'candidate'")

        with self._lock:
            room = self.rooms.get(room_id)
            if not room:
                raise NotFound("Room not found")
            if not room['isActive']:
                raise Conflict("Room is no longer active")
            if role == "candidate":
                candidates = [p for p in self.participants.values()
                              if p['roomId'] == room_id and p['role'] == "candidate"]
                if candidates:
                    raise Conflict("This room already has a candidate")

            participant = {
                'id': str(uuid.uuid4()),
                'roomId': room_id,
                'name': name,
                'role': role,
                'peerId': None,
                'isConnected': True,
                'isSpeaking': False,
                'lastSpokeAt': None,
                'joinedAt': utcnow(),
            }
            self.participants[participant['id']] = participant
        logger.info("[STORE] %s %s joined room %s", role, participant['id'], room_id)
        return dict(participant)

    def get_participant(self, participant_id):
        with self._lock:
            participant = self.participants.get(participant_id)
            return dict(participant) if participant else None

    def get_participants(self, room_id):
        with self._lock:
            return [dict(p) for p in self.participants.values() if p['roomId'] == room_id]

    def _update_participant(self, participant_id, **fields):
        with self._lock:
            participant = self.participants.get(participant_id)
            if not participant:
                raise NotFound("Participant not found")
            participant.update(fields)
            return dict(participant)

    def set_connected(self, participant_id, connected):
        return self._update_participant(participant_id, isConnected=bool(connected))

    def set_peer_id(self, participant_id, peer_id):
        return self._update_participant(participant_id, peerId=peer_id)

    def set_speaking(self, participant_id, speaking):
        fields = {'isSpeaking': bool(speaking)}
        if speaking:
            fields['lastSpokeAt'] = utcnow()
        return self._update_participant(participant_id, **fields)

    # Messages

    def add_message(self, room_id, sender_id, content, message_type="text"):
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Message content is required")
        message_type = message_type or "text"
        if message_type not in MESSAGE_TYPES:
            raise ValidationError(f"Unknown message type '{message_type}'")

        with self._lock:
            if room_id not in self.rooms:
                raise NotFound("Room not found")
            message = {
                'id': str(uuid.uuid4()),
                'roomId': room_id,
                'senderId': sender_id,
                'content': content,
                'type': message_type,
                'timestamp': utcnow(),
            }
            self.messages[room_id].append(message)
            return dict(message)

    def get_messages(self, room_id):
        with self._lock:
            return [dict(m) for m in self.messages.get(room_id, [])]

    # Code document

    def get_code_state(self, room_id):
        with self._lock:
            state = self.code_states.get(room_id)
            return dict(state) if state else None

    def apply_code_change(self, room_id, participant_id, content, language, base_version):
        # stale edits are rejected and get the current state back
        if not isinstance(content, str):
            raise ValidationError("Code content must be a string")
        if isinstance(base_version, bool) or not isinstance(base_version, int):
            raise ValidationError("Code version must be an integer")

        with self._lock:
            state = self.code_states.get(room_id)
            if state is None:
                raise NotFound("Room not found")
            if base_version < state['version']:
                return False, dict(state)
            state.update({
                'content': content,
                'language': language or state['language'],
                'version': state['version'] + 1,
                'lastModifiedBy': participant_id,
                'updatedAt': utcnow(),
            })
            return True, dict(state)

    # Violations

    def record_violation(self, data):
        if not isinstance(data, dict):
            raise ValidationError("Invalid violation report")
        violation_type = data.get('type')
        if violation_type not in VIOLATION_TYPES:
            raise ValidationError(f"Unknown violation type '{violation_type}'")
        room_id = data.get('roomId')
        timestamp = data.get('timestamp', now_ms())
        confidence = data.get('confidence', 0)
        if not _is_number(timestamp):
            raise ValidationError("Violation timestamp must be epoch milliseconds")
        if not _is_number(confidence) or not 0 <= confidence <= 1:
            raise ValidationError("Violation confidence must be between 0 and 1")

        violation = {
            'type': violation_type,
            'roomId': room_id,
            'participantId': data.get('participantId'),
            'timestamp': int(timestamp),
            'confidence': float(confidence),
            'description': data.get('description', ''),
            'receivedAt': utcnow(),
        }
        with self._lock:
            if not isinstance(room_id, str) or room_id not in self.rooms:
                raise NotFound("Room not found")
            history = self.violations[room_id]
            history.append(violation)
            del history[:-MAX_VIOLATIONS_PER_ROOM]
        return dict(violation)

    def get_violations(self, room_id, participant_id=None):
        with self._lock:
            history = self.violations.get(room_id, [])
            return [dict(v) for v in history
                    if participant_id is None or v['participantId'] == participant_id]

    def violation_summary(self, room_id, participant_id=None, now=None):
        now = now_ms() if now is None else now
        violations = self.get_violations(room_id, participant_id)
        recent = [v for v in violations if now - v['timestamp'] < RECENT_VIOLATION_WINDOW_MS]

        by_type = {}
        for violation in recent:
            by_type[violation['type']] = by_type.get(violation['type'], 0) + 1

        if len(recent) > 5:
            risk_level = "high"
        elif len(recent) > 2:
            risk_level = "medium"
        else:
            risk_level = "low"

        return {
            'total': len(violations),
            'recent': len(recent),
            'byType': by_type,
            'riskLevel': risk_level,
        }

    def snapshot(self, room_id):
        room = self.get_room(room_id)
        if not room:
            raise NotFound("Room not found")
        return {
            'room': room,
            'participants': self.get_participants(room_id),
            'messages': self.get_messages(room_id),
            'codeState': self.get_code_state(room_id),
        }


store = RoomStore()
