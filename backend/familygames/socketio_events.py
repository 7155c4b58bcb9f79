from flask_socketio import join_room, leave_room, emit
from familygames import socketio
from flask import current_app, request
from familygames.api import json_object
from familygames.errors import GameError, RoomBusyError, ValidationError
from familygames.services.games import moves, tiles
from familygames.services.games.broadcast import ConnectionTracker, public_view, room_channel


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _tracker() -> ConnectionTracker:
    return current_app.extensions['connections']


def handle_connect():
    emit('connected', {'message': 'Connected to /ws'})


def handle_disconnect(*args):
    ctx = _tracker().pop(_get_sid())
    if ctx:
        current_app.logger.info(f"[disconnect] game={ctx[0]} player={ctx[1]}")


def handle_join_game(data):
    game_code = (json_object(data).get('game_code') or '').upper()
    player_name = json_object(data).get('player_name')
    if not game_code or not player_name:
        emit('error', {'message': 'game_code and player_name are required'})
        return
    try:
        room = moves.get_registry().get(game_code)
    except GameError as exc:
        emit('error', {'message': str(exc)})
        return
    if player_name not in room.players:
        emit('error', {'message': 'You are not a player in this game'})
        return

    join_room(room_channel(room.code))
    _tracker().bind(_get_sid(), room.code, player_name)
    if room.kind == 'tile':
        state = tiles.player_view(room, player_name)
    else:
        state = public_view(room)
    emit('game_state', {'game': state, 'player_name': player_name})
    current_app.logger.info(f"[ws-join] game={room.code} player={player_name}")


def handle_leave_game(data):
    game_code = (json_object(data).get('game_code') or '').upper()
    if not game_code:
        emit('error', {'message': 'game_code is required'})
        return
    leave_room(room_channel(game_code))
    ctx = _tracker().get(_get_sid())
    if ctx and ctx[0] == game_code:
        _tracker().pop(_get_sid())
    emit('left', {'room': room_channel(game_code)})


def handle_make_move(data):
    ctx = _tracker().get(_get_sid())
    if not ctx:
        emit('error', {'message': 'You are not in a game'})
        return
    game_code, player_name = ctx
    move_type = json_object(data).get('move_type')
    move_data = json_object(data).get('move_data') or {}
    try:
        room, message = moves.submit_tile_move(
            moves.get_registry(), game_code, player_name, move_type, move_data,
            flavor=moves.get_flavor(), broadcaster=moves.get_broadcaster())
    except RoomBusyError as exc:
        emit('move_error', {'message': str(exc), 'retry': True})
        return
    except ValidationError as exc:
        emit('move_error', {'message': str(exc), 'retry': False})
        return
    except GameError as exc:
        current_app.logger.error(f"[ws-move] game={game_code} player={player_name} failed: {exc}")
        emit('error', {'message': 'Error processing move'})
        return
    current_app.logger.info(f"[ws-move] game={room.code} player={player_name} type={move_type} -> {message}")


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers(testing: bool = False) -> None:
    """Register Socket.IO event handlers.

    Always register on namespace '/ws'. When testing is True, also mirror
    handlers on the default namespace '/' to accommodate the test harness.
    """
    handlers = {
        'connect': handle_connect,
        'disconnect': handle_disconnect,
        'join_game': handle_join_game,
        'leave_game': handle_leave_game,
        'make_move': handle_make_move,
        'ping': handle_ping,
    }
    namespaces = ['/ws', '/'] if testing else ['/ws']
    for namespace in namespaces:
        for event, handler in handlers.items():
            socketio.on_event(event, handler, namespace=namespace)
