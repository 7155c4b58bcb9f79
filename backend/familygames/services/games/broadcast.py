import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from . import tiles, wheel
from .turns import Room

NAMESPACE = '/ws'


def room_channel(code: str) -> str:
    return f"game:{code.upper()}"


def public_view(room: Room) -> dict:
    if room.kind == 'tile':
        return tiles.public_view(room)
    return wheel.public_view(room)


class ConnectionTracker:
    """Which socket belongs to which (game_code, player)."""

    def __init__(self):
        self._by_sid: Dict[str, Tuple[str, str]] = {}
        self._lock = threading.Lock()

    def bind(self, sid: str, game_code: str, player: str) -> None:
        with self._lock:
            self._by_sid[sid] = (game_code.upper(), player)

    def get(self, sid: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._by_sid.get(sid)

    def pop(self, sid: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._by_sid.pop(sid, None)

    def sids_for(self, game_code: str, player: str) -> List[str]:
        key = (game_code.upper(), player)
        with self._lock:
            return [sid for sid, ctx in self._by_sid.items() if ctx == key]


class SocketBroadcaster:
    """Fan out room updates to connected participants over Socket.IO."""

    def __init__(self, socketio, tracker: ConnectionTracker, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.tracker = tracker
        self.namespace = namespace

    def player_joined(self, room: Room, player: str, message: str) -> None:
        self.socketio.emit('player_joined', {
            'game_code': room.code,
            'player': player,
            'status': room.status,
            'message': message,
        }, to=room_channel(room.code), namespace=self.namespace)

    def game_updated(self, room: Room, player: str, move_type: str, message: str) -> None:
        self.socketio.emit('game_updated', {
            'game': public_view(room),
            'move': {'player': player, 'type': move_type, 'result': message},
            'timestamp': datetime.now(timezone.utc).isoformat(),
        }, to=room_channel(room.code), namespace=self.namespace)
        if room.kind == 'tile':
            self.send_hands(room)

    def send_hands(self, room: Room) -> None:
        """Each tile player gets only their own hand."""
        for name in room.players:
            hand = tiles.hand_of(room, name)
            for sid in self.tracker.sids_for(room.code, name):
                self.socketio.emit('your_hand', hand, to=sid, namespace=self.namespace)
