"""Move pipeline shared by the HTTP routes and the socket handlers.

claim room -> apply to a draft -> persist draft + move log -> swap into the
registry -> broadcast. Validation errors raised by the engines leave the live
room untouched because only the draft was mutated.
"""
import random
from typing import Any, Dict, List, Optional, Tuple

from flask import current_app

from familygames.errors import RoomNotFoundError, ValidationError
from . import tiles, wheel
from .broadcast import SocketBroadcaster
from .flavor import FlavorText
from .registry import GameRegistry
from .turns import PLAYING, WAITING, Room


def get_registry() -> GameRegistry:
    return current_app.extensions['game_registry']


def get_broadcaster() -> Optional[SocketBroadcaster]:
    return current_app.extensions.get('broadcaster')


def get_flavor() -> Optional[FlavorText]:
    return current_app.extensions.get('flavor_text')


def _get_kind(registry: GameRegistry, code: str, kind: str) -> Room:
    room = registry.get(code)
    if room.kind != kind:
        raise RoomNotFoundError(f'Game {code} not found')
    return room


# ---- Tile game ----

def create_tile_game(registry: GameRegistry, player_name: str,
                     initial_meld_points: int = tiles.DEFAULT_INITIAL_MELD_POINTS,
                     hand_size: int = tiles.DEFAULT_HAND_SIZE, rng=random) -> Room:
    if not player_name:
        raise ValidationError('Player name is required')
    room = Room(
        code=registry.new_code('TILE'),
        kind='tile',
        players=[player_name],
        status=WAITING,
        current_player=player_name,
        state=tiles.new_tile_state(initial_meld_points, hand_size, rng=rng),
    )
    return registry.create(room)


def join_tile_game(registry: GameRegistry, code: str, player_name: str,
                   broadcaster: Optional[SocketBroadcaster] = None) -> Tuple[Room, str]:
    _get_kind(registry, code, 'tile')
    with registry.claim(code) as live:
        draft = live.draft()
        message = tiles.join(draft, player_name)
        draft.touch()
        registry.commit(draft, (player_name, 'join', None))
        if broadcaster is not None:
            broadcaster.player_joined(draft, player_name, message)
    return draft, message


def get_tile_game(registry: GameRegistry, code: str) -> Room:
    return _get_kind(registry, code, 'tile')


def submit_tile_move(registry: GameRegistry, code: str, player: str, move_type: str,
                     move_data: Optional[Dict[str, Any]] = None, flavor: Optional[FlavorText] = None,
                     broadcaster: Optional[SocketBroadcaster] = None) -> Tuple[Room, str]:
    _get_kind(registry, code, 'tile')
    with registry.claim(code) as live:
        draft = live.draft()
        message = tiles.apply_move(draft, player, move_type, move_data, flavor=flavor)
        draft.touch()
        registry.commit(draft, (player, move_type, move_data))
        if broadcaster is not None:
            broadcaster.game_updated(draft, player, move_type, message)
    return draft, message


# ---- Wheel game ----

def create_wheel_game(registry: GameRegistry, players: List[str], category: Optional[str] = None,
                      flavor: Optional[FlavorText] = None, rng=random) -> Room:
    if len(players) < 2:
        raise ValidationError('The wheel game needs a roster of players')
    phrase, category = wheel.choose_phrase(category, flavor=flavor, rng=rng)
    room = Room(
        code=registry.new_code('WHEEL'),
        kind='wheel',
        players=list(players),
        status=PLAYING,
        current_player=players[0],
        state=wheel.new_wheel_state(players, category, phrase),
    )
    return registry.create(room)


def get_wheel_game(registry: GameRegistry, code: str) -> Room:
    return _get_kind(registry, code, 'wheel')


def submit_wheel_move(registry: GameRegistry, code: str, player: str, action: str,
                      data: Optional[Dict[str, Any]] = None, rng=random,
                      broadcaster: Optional[SocketBroadcaster] = None) -> Tuple[Room, str, Dict[str, Any]]:
    _get_kind(registry, code, 'wheel')
    with registry.claim(code) as live:
        draft = live.draft()
        message, extra = wheel.apply_move(draft, player, action, data, rng=rng)
        draft.touch()
        # Spin results are server side; keep them in the audit log
        registry.commit(draft, (player, action, dict(data or {}, **extra)))
        if broadcaster is not None:
            broadcaster.game_updated(draft, player, action, message)
    return draft, message, extra


def wheel_games_for(registry: GameRegistry, player: str) -> List[Dict[str, Any]]:
    return [wheel.summary_for(room, player)
            for room in registry.find('wheel', status=PLAYING)
            if player in room.players]
