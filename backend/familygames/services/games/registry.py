"""Game registry: the single in-process owner of room state.

The registry maps room codes to `Room` records, loads cold rooms from the
durable store, and serializes moves per room with a busy flag. Rooms are
replaced wholesale by `commit`, and only after the store accepted the write.
"""
import json
import logging
import threading
from contextlib import contextmanager
from datetime import timezone
from typing import Dict, Iterator, List, Optional, Protocol, Set, Tuple

from sqlalchemy.exc import SQLAlchemyError

from familygames.errors import PersistenceError, RoomBusyError, RoomNotFoundError
from .tiles import TileState
from .turns import Room
from .wheel import WheelState

logger = logging.getLogger(__name__)

STATE_TYPES = {
    'tile': TileState,
    'wheel': WheelState,
}

# (player, move_type, move_data)
MoveRecord = Tuple[str, str, Optional[dict]]


class RoomStore(Protocol):
    def load(self, code: str) -> Optional[Room]:
        ...

    def save(self, room: Room, move: Optional[MoveRecord] = None) -> None:
        ...

    def new_code(self, prefix: str) -> str:
        ...

    def find(self, kind: str, status: Optional[str] = None) -> List[Room]:
        ...


def _aware(value):
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlRoomStore:
    """RoomStore backed by the Flask-SQLAlchemy `game` and `move` tables."""

    def _to_room(self, row) -> Room:
        state_type = STATE_TYPES[row.kind]
        return Room(
            code=row.code,
            kind=row.kind,
            players=json.loads(row.players or '[]'),
            status=row.status,
            current_player=row.current_player,
            state=state_type.from_dict(json.loads(row.state)),
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    def load(self, code: str) -> Optional[Room]:
        from familygames.models import Game
        row = Game.query.filter_by(code=code).first()
        return self._to_room(row) if row else None

    def save(self, room: Room, move: Optional[MoveRecord] = None) -> None:
        from familygames import db
        from familygames.models import Game, Move
        try:
            row = Game.query.filter_by(code=room.code).first()
            if row is None:
                row = Game(code=room.code, kind=room.kind, created_at=room.created_at)
            row.players = json.dumps(room.players)
            row.current_player = room.current_player
            row.status = room.status
            row.state = json.dumps(room.state.to_dict())
            row.updated_at = room.updated_at
            db.session.add(row)
            if move is not None:
                player, move_type, move_data = move
                db.session.add(Move(game_code=room.code, player=player, move_type=move_type,
                                    move_data=json.dumps(move_data) if move_data is not None else None))
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise PersistenceError(f'Could not save game {room.code}') from exc

    def new_code(self, prefix: str) -> str:
        from familygames.models import generate_game_code
        return generate_game_code(prefix)

    def find(self, kind: str, status: Optional[str] = None) -> List[Room]:
        from familygames.models import Game
        query = Game.query.filter_by(kind=kind)
        if status:
            query = query.filter_by(status=status)
        return [self._to_room(row) for row in query.order_by(Game.updated_at.desc()).all()]


class GameRegistry:
    def __init__(self, store: RoomStore):
        self.store = store
        self._rooms: Dict[str, Room] = {}
        self._busy: Set[str] = set()
        self._lock = threading.Lock()

    def get(self, code: str) -> Room:
        """Return the live room, loading it from the store when cold."""
        code = (code or '').strip().upper()
        with self._lock:
            room = self._rooms.get(code)
        if room is not None:
            return room
        room = self.store.load(code)
        if room is None:
            raise RoomNotFoundError(f'Game {code} not found')
        with self._lock:
            # Another request may have warmed it meanwhile
            return self._rooms.setdefault(code, room)

    def new_code(self, prefix: str) -> str:
        while True:
            code = self.store.new_code(prefix)
            with self._lock:
                if code not in self._rooms:
                    return code

    def create(self, room: Room) -> Room:
        self.store.save(room)
        with self._lock:
            self._rooms[room.code] = room
        logger.info("[create] game=%s kind=%s players=%s", room.code, room.kind, room.players)
        return room

    @contextmanager
    def claim(self, code: str) -> Iterator[Room]:
        """Hold the room's busy flag for the duration of one move.

        A second claim on the same room while the first is in progress
        raises RoomBusyError instead of waiting.
        """
        room = self.get(code)
        with self._lock:
            if room.code in self._busy:
                raise RoomBusyError('Another move is being processed, try again')
            self._busy.add(room.code)
            # A move may have committed between get() and taking the flag
            room = self._rooms.get(room.code, room)
        try:
            yield room
        finally:
            with self._lock:
                self._busy.discard(room.code)

    def is_busy(self, code: str) -> bool:
        with self._lock:
            return code in self._busy

    def commit(self, room: Room, move: Optional[MoveRecord] = None) -> Room:
        """Persist `room` and swap it in as the live copy. Nothing changes if the write fails."""
        try:
            self.store.save(room, move)
        except PersistenceError:
            logger.error("[persist-failed] game=%s", room.code)
            raise
        with self._lock:
            self._rooms[room.code] = room
        return room

    def find(self, kind: str, status: Optional[str] = None) -> List[Room]:
        """Rooms of one kind, live copies taking precedence over stored ones."""
        found = []
        for stored in self.store.find(kind, status):
            with self._lock:
                live = self._rooms.get(stored.code, stored)
            if status is None or live.status == status:
                found.append(live)
        return found
