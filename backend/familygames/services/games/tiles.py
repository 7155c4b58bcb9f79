"""
Tile-matching game engine.

Handles:
- Tile set creation and dealing
- Group (run / set) validation
- Opening meld threshold
- Drawing, ending the turn and win detection

Functions mutate the room passed in. Callers hand them a draft copy so a
rejected move (ValidationError) or a failed save leaves the live room as is.
"""
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from familygames.errors import RoomFullError, ValidationError
from .flavor import FlavorText, first_meld_message
from .turns import PLAYING, TERMINAL_STATUSES, WAITING, FINISHED, Room, ensure_can_move

logger = logging.getLogger(__name__)

COLORS = ('red', 'blue', 'green', 'orange')
MIN_VALUE = 1
MAX_VALUE = 13
COPIES = 2
WILDCARDS = 2
TOTAL_TILES = COPIES * len(COLORS) * MAX_VALUE + WILDCARDS  # 106
MIN_GROUP_SIZE = 3
DEFAULT_HAND_SIZE = 14
DEFAULT_INITIAL_MELD_POINTS = 30
MAX_PLAYERS = 2

START_MESSAGE = "Let the match begin!"


@dataclass(frozen=True)
class Tile:
    id: int
    number: Optional[int]
    color: Optional[str]
    is_wild: bool = False

    @property
    def value(self) -> int:
        return 0 if self.is_wild else self.number

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'number': self.number, 'color': self.color, 'is_wild': self.is_wild}


def create_tile_set() -> List[Tile]:
    """The full 106 tile universe. Ids are stable: the same id always maps to the same tile."""
    tiles = []
    tile_id = 0
    for _ in range(COPIES):
        for color in COLORS:
            for number in range(MIN_VALUE, MAX_VALUE + 1):
                tiles.append(Tile(tile_id, number, color))
                tile_id += 1
    for _ in range(WILDCARDS):
        tiles.append(Tile(tile_id, None, None, is_wild=True))
        tile_id += 1
    return tiles


TILE_UNIVERSE: Tuple[Tile, ...] = tuple(create_tile_set())


def tile_by_id(tile_id) -> Tile:
    # bool is an int subclass; floats and strings would alias other tiles
    if isinstance(tile_id, bool) or not isinstance(tile_id, int):
        raise ValidationError(f'Unknown tile: {tile_id!r}')
    if not 0 <= tile_id < len(TILE_UNIVERSE):
        raise ValidationError(f'Unknown tile: {tile_id!r}')
    return TILE_UNIVERSE[tile_id]


@dataclass
class TileState:
    pile: List[Tile]
    hands: List[List[Tile]]
    melds: List[Tuple[Tile, ...]] = field(default_factory=list)
    scores: List[int] = field(default_factory=lambda: [0, 0])
    opened: List[bool] = field(default_factory=lambda: [False, False])
    initial_meld_points: int = DEFAULT_INITIAL_MELD_POINTS
    has_drawn: bool = False
    flavor_text: str = START_MESSAGE
    winner: Optional[str] = None

    def tile_ids(self) -> List[int]:
        """Every tile id currently in play, in pile, hands and melds."""
        ids = [t.id for t in self.pile]
        for hand in self.hands:
            ids.extend(t.id for t in hand)
        for meld in self.melds:
            ids.extend(t.id for t in meld)
        return ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pile': [t.id for t in self.pile],
            'hands': [[t.id for t in hand] for hand in self.hands],
            'melds': [[t.id for t in meld] for meld in self.melds],
            'scores': list(self.scores),
            'opened': list(self.opened),
            'initial_meld_points': self.initial_meld_points,
            'has_drawn': self.has_drawn,
            'flavor_text': self.flavor_text,
            'winner': self.winner,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TileState':
        return cls(
            pile=[TILE_UNIVERSE[i] for i in data['pile']],
            hands=[[TILE_UNIVERSE[i] for i in hand] for hand in data['hands']],
            melds=[tuple(TILE_UNIVERSE[i] for i in meld) for meld in data.get('melds', [])],
            scores=list(data.get('scores', [0, 0])),
            opened=list(data.get('opened', [False, False])),
            initial_meld_points=int(data.get('initial_meld_points', DEFAULT_INITIAL_MELD_POINTS)),
            has_drawn=bool(data.get('has_drawn', False)),
            flavor_text=data.get('flavor_text') or START_MESSAGE,
            winner=data.get('winner'),
        )


def new_tile_state(initial_meld_points: int = DEFAULT_INITIAL_MELD_POINTS,
                   hand_size: int = DEFAULT_HAND_SIZE, rng=random) -> TileState:
    """Shuffle the universe and deal two hands; the rest becomes the draw pile."""
    if initial_meld_points < 0:
        raise ValidationError('Opening meld points cannot be negative')
    tiles = list(TILE_UNIVERSE)
    rng.shuffle(tiles)
    return TileState(
        pile=tiles[2 * hand_size:],
        hands=[tiles[:hand_size], tiles[hand_size:2 * hand_size]],
        initial_meld_points=initial_meld_points,
    )


# ---- Group validation ----

def group_value(tiles: Iterable[Tile]) -> int:
    """Sum of face values; wildcards count as zero."""
    return sum(t.value for t in tiles)


def is_valid_run(tiles: Sequence[Tile]) -> bool:
    """One color, distinct values, wildcards filling any gaps between them."""
    if not MIN_GROUP_SIZE <= len(tiles) <= MAX_VALUE:
        return False
    real = [t for t in tiles if not t.is_wild]
    if not real:
        return False
    if len({t.color for t in real}) != 1:
        return False
    numbers = sorted(t.number for t in real)
    if len(set(numbers)) != len(numbers):
        return False
    gaps = numbers[-1] - numbers[0] + 1 - len(numbers)
    return gaps <= len(tiles) - len(real)


def is_valid_set(tiles: Sequence[Tile]) -> bool:
    """One value, pairwise distinct colors; at most one tile per color."""
    if not MIN_GROUP_SIZE <= len(tiles) <= len(COLORS):
        return False
    real = [t for t in tiles if not t.is_wild]
    if not real:
        return False
    if len({t.number for t in real}) != 1:
        return False
    return len({t.color for t in real}) == len(real)


def validate_group(tiles: Sequence[Tile]) -> bool:
    return is_valid_run(tiles) or is_valid_set(tiles)


# ---- Moves ----

def seat_of(game: Room, player: str) -> int:
    try:
        return game.players.index(player)
    except ValueError:
        raise ValidationError('You are not a player in this game')


def join(game: Room, player: str) -> str:
    """Second participant takes the free seat; the game starts immediately."""
    if not player:
        raise ValidationError('Player name is required')
    if game.status in TERMINAL_STATUSES:
        raise ValidationError('This game is already over')
    if player in game.players:
        raise ValidationError("You're already in this game")
    if len(game.players) >= MAX_PLAYERS or game.status != WAITING:
        raise RoomFullError('This game is full')
    game.players.append(player)
    game.status = PLAYING
    return f'{player} joined the game. Let the match begin!'


def form_group(game: Room, player: str, tile_ids: Sequence, flavor: Optional[FlavorText] = None) -> str:
    state: TileState = game.state
    seat = seat_of(game, player)
    if not isinstance(tile_ids, (list, tuple)):
        raise ValidationError('tile_ids must be a list of tile ids')
    ids = list(tile_ids)
    if len(ids) < MIN_GROUP_SIZE:
        raise ValidationError(f'You need at least {MIN_GROUP_SIZE} tiles to form a group')
    tiles = [tile_by_id(i) for i in ids]
    if len({t.id for t in tiles}) != len(tiles):
        raise ValidationError('The same tile was selected more than once')
    if not validate_group(tiles):
        raise ValidationError('The selected tiles do not form a valid group')

    # Ownership by id: tiles can't be forged from values
    hand_ids = {t.id for t in state.hands[seat]}
    if any(t.id not in hand_ids for t in tiles):
        raise ValidationError("You can't use tiles you don't hold")

    opening = not state.opened[seat]
    if opening and group_value(tiles) < state.initial_meld_points:
        raise ValidationError(f'Your first meld must add up to at least {state.initial_meld_points} points')

    selected = {t.id for t in tiles}
    state.hands[seat] = [t for t in state.hands[seat] if t.id not in selected]
    state.melds.append(tuple(tiles))
    if opening:
        state.opened[seat] = True
        state.flavor_text = first_meld_message(flavor, player)

    if not state.hands[seat]:
        points = finish_game(game, player)
        return f'{player} won the game! (+{points} points)'
    return f'Valid group formed by {player}'


def draw_tile(game: Room, player: str) -> str:
    state: TileState = game.state
    seat = seat_of(game, player)
    if state.has_drawn:
        raise ValidationError('You already drew a tile this turn')
    if not state.pile:
        raise ValidationError('There are no more tiles to draw')
    state.hands[seat].append(state.pile.pop(0))
    state.has_drawn = True
    return f'{player} drew a tile'


def end_turn(game: Room, player: str) -> str:
    state: TileState = game.state
    game.current_player = game.roster.next_after(player)
    state.has_drawn = False
    return f'Turn over. Now playing: {game.current_player}'


def finish_game(game: Room, winner: str) -> int:
    """Credit the winner with the opponent's remaining hand value and close the room."""
    state: TileState = game.state
    seat = seat_of(game, winner)
    points = sum(group_value(hand) for i, hand in enumerate(state.hands) if i != seat)
    state.scores[seat] += points
    state.winner = winner
    game.status = FINISHED
    logger.info("[finish] game=%s winner=%s points=%s", game.code, winner, points)
    return points


TILE_MOVES = ('form_group', 'draw_tile', 'end_turn')


def apply_move(game: Room, player: str, move_type: str, move_data: Optional[Dict[str, Any]] = None,
               flavor: Optional[FlavorText] = None) -> str:
    """Validate turn ownership, then dispatch one move. Returns the outcome message."""
    ensure_can_move(game, player)
    if move_data is None:
        move_data = {}
    if not isinstance(move_data, dict):
        raise ValidationError('move_data must be an object')
    if move_type == 'form_group':
        return form_group(game, player, move_data.get('tile_ids', []), flavor=flavor)
    if move_type == 'draw_tile':
        return draw_tile(game, player)
    if move_type == 'end_turn':
        return end_turn(game, player)
    raise ValidationError(f'Invalid move type: {move_type}. Expected one of: {", ".join(TILE_MOVES)}')


# ---- Views ----

def _by_name(game: Room, values: List) -> Dict[str, Any]:
    return {name: values[i] for i, name in enumerate(game.players)}


def public_view(game: Room) -> Dict[str, Any]:
    """Room snapshot without private hands."""
    state: TileState = game.state
    data = game.to_dict()
    data.update({
        'table_groups': [[t.to_dict() for t in meld] for meld in state.melds],
        'pile_count': len(state.pile),
        'hand_counts': _by_name(game, [len(h) for h in state.hands]),
        'scores': _by_name(game, state.scores),
        'initial_meld': _by_name(game, state.opened),
        'initial_meld_points': state.initial_meld_points,
        'has_drawn_this_turn': state.has_drawn,
        'flavor_text': state.flavor_text,
        'winner': state.winner,
    })
    return data


def player_view(game: Room, player: Optional[str]) -> Dict[str, Any]:
    data = public_view(game)
    if player in game.players:
        data['your_hand'] = hand_of(game, player)
    return data


def hand_of(game: Room, player: str) -> List[Dict[str, Any]]:
    return [t.to_dict() for t in game.state.hands[seat_of(game, player)]]
