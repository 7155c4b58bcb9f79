from flask import Blueprint, jsonify, request, current_app
from datetime import datetime, timezone
from familygames.api import error_response, json_object
from familygames.errors import GameError
from familygames.services.games import moves, tiles


tile = Blueprint('tile', __name__)


@tile.errorhandler(GameError)
def handle_game_error(exc):
    return error_response(exc)


@tile.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'OK', 'game': 'Tile', 'timestamp': datetime.now(timezone.utc).isoformat()})


@tile.route('/games', methods=['POST'])
def create_game():
    data = json_object(request.get_json(silent=True))
    player_name = (data.get('player_name') or '').strip()
    if not player_name:
        return jsonify({'error': 'player_name is required'}), 400
    points = data.get('initial_meld_points', current_app.config.get('TILE_INITIAL_MELD_POINTS', 30))
    try:
        points = int(points)
    except (TypeError, ValueError):
        return jsonify({'error': 'initial_meld_points must be a number'}), 400
    hand_size = int(current_app.config.get('TILE_HAND_SIZE', tiles.DEFAULT_HAND_SIZE))

    room = moves.create_tile_game(moves.get_registry(), player_name, points, hand_size)
    current_app.logger.info(f"[create] game={room.code} player={player_name} threshold={points}")
    return jsonify({
        'game_code': room.code,
        'player': player_name,
        'message': f'Game created. Share the code: {room.code}',
    }), 201


@tile.route('/games/<string:game_code>/join', methods=['POST'])
def join_game(game_code):
    data = json_object(request.get_json(silent=True))
    player_name = (data.get('player_name') or '').strip()
    if not player_name:
        return jsonify({'error': 'player_name is required'}), 400

    room, message = moves.join_tile_game(moves.get_registry(), game_code, player_name,
                                         broadcaster=moves.get_broadcaster())
    current_app.logger.info(f"[join] game={room.code} player={player_name}")
    return jsonify({
        'game_code': room.code,
        'player': player_name,
        'opponent': room.players[0],
        'message': message,
    })


@tile.route('/games/<string:game_code>', methods=['GET'])
def get_game_state(game_code):
    room = moves.get_tile_game(moves.get_registry(), game_code)
    return jsonify(tiles.player_view(room, request.args.get('player')))


@tile.route('/games/<string:game_code>/moves', methods=['POST'])
def make_move(game_code):
    data = json_object(request.get_json(silent=True))
    player = data.get('player_name')
    move_type = data.get('move_type')
    if not all([player, move_type]):
        return jsonify({'success': False, 'error': 'player_name and move_type are required'}), 400

    room, message = moves.submit_tile_move(
        moves.get_registry(), game_code, player, move_type, data.get('move_data') or {},
        flavor=moves.get_flavor(), broadcaster=moves.get_broadcaster())
    current_app.logger.info(f"[move] game={room.code} player={player} type={move_type} -> {message}")
    return jsonify({'success': True, 'message': message, 'game': tiles.player_view(room, player)})
