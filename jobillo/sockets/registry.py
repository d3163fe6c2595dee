import threading


class ConnectionRegistry:
    def __init__(self):
        self._lock = threading.Lock()
        self._by_sid = {}
        self._by_participant = {}

    def clear(self):
        with self._lock:
            self._by_sid.clear()
            self._by_participant.clear()

    def bind(self, sid, room_id, participant_id):
        with self._lock:
            self._drop(sid)
            self._by_sid[sid] = {'roomId': room_id, 'participantId': participant_id}
            self._by_participant.setdefault((room_id, participant_id), set()).add(sid)

    def unbind(self, sid):
        with self._lock:
            return self._drop(sid)

    def _drop(self, sid):
        binding = self._by_sid.pop(sid, None)
        if binding:
            key = (binding['roomId'], binding['participantId'])
            sids = self._by_participant.get(key, set())
            sids.discard(sid)
            if not sids:
                self._by_participant.pop(key, None)
        return binding

    def get(self, sid):
        with self._lock:
            binding = self._by_sid.get(sid)
            return dict(binding) if binding else None

    def sids_for(self, room_id, participant_id):
        with self._lock:
            return set(self._by_participant.get((room_id, participant_id), ()))

    def room_participants(self, room_id):
        with self._lock:
            return sorted(pid for rid, pid in self._by_participant if rid == room_id)

    def count(self):
        with self._lock:
            return len(self._by_sid)


registry = ConnectionRegistry()
