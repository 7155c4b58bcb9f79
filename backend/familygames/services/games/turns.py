"""Room record and turn control shared by both games."""
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from familygames.errors import NotYourTurnError, ValidationError

WAITING = 'waiting'
PLAYING = 'playing'
FINISHED = 'finished'
COMPLETED = 'completed'

TERMINAL_STATUSES = (FINISHED, COMPLETED)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Roster:
    """Fixed, ordered list of participant names used for turn rotation."""

    def __init__(self, names: Iterable[str]):
        self.names: List[str] = list(names)
        if len(set(self.names)) != len(self.names):
            raise ValueError('Roster names must be unique')

    def __contains__(self, name) -> bool:
        return name in self.names

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self):
        return iter(self.names)

    def next_after(self, current: str) -> str:
        """Cyclic successor of `current` by index."""
        if not self.names:
            raise ValueError('Roster is empty')
        try:
            idx = self.names.index(current)
        except ValueError:
            raise ValidationError(f'{current} is not in this game')
        return self.names[(idx + 1) % len(self.names)]


@dataclass
class Room:
    """A game room as held by the registry.

    `state` is the game-specific document (TileState or WheelState).
    """
    code: str
    kind: str
    players: List[str]
    status: str
    current_player: Optional[str]
    state: Any
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def roster(self) -> Roster:
        return Roster(self.players)

    def draft(self) -> 'Room':
        """Independent copy to apply a move to before it is persisted."""
        return copy.deepcopy(self)

    def touch(self) -> None:
        now = utcnow()
        # Monotonic even if the wall clock steps back
        self.updated_at = now if now > self.updated_at else self.updated_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'game_code': self.code,
            'kind': self.kind,
            'players': list(self.players),
            'status': self.status,
            'current_player': self.current_player,
            'created_at': self.created_at.isoformat(),
            'updated_at': self.updated_at.isoformat(),
        }


def ensure_can_move(game: Room, player: str) -> None:
    """Reject a mutating move unless the room is playing and it is `player`'s turn."""
    if player not in game.players:
        raise ValidationError('You are not a player in this game')
    if game.status == WAITING:
        raise ValidationError('Waiting for an opponent to join')
    if game.status in TERMINAL_STATUSES:
        raise ValidationError('This game is already over')
    if game.status != PLAYING:
        raise ValidationError(f'Game is not available ({game.status})')
    if game.current_player != player:
        raise NotYourTurnError("It's not your turn")
