from flask import Blueprint, jsonify, request, current_app
from datetime import datetime, timezone
from familygames.api import error_response, json_object
from familygames.errors import GameError
from familygames.services.games import moves, wheel as engine


wheel = Blueprint('wheel', __name__)


@wheel.errorhandler(GameError)
def handle_game_error(exc):
    return error_response(exc)


@wheel.route('/health', methods=['GET'])
def health():
    return jsonify({'status': 'OK', 'game': 'Wheel', 'timestamp': datetime.now(timezone.utc).isoformat()})


@wheel.route('/categories', methods=['GET'])
def list_categories():
    return jsonify({'categories': sorted(engine.PHRASES)})


@wheel.route('/games', methods=['POST'])
def create_game():
    data = json_object(request.get_json(silent=True))
    players = list(current_app.config.get('WHEEL_PLAYERS') or [])
    room = moves.create_wheel_game(moves.get_registry(), players, data.get('category'),
                                   flavor=moves.get_flavor())
    category = room.state.category
    current_app.logger.info(f"[create] game={room.code} category={category}")
    return jsonify({
        'game_code': room.code,
        'message': f'Game created: {category}',
        'category': category,
        'players': room.players,
    }), 201


@wheel.route('/games/<string:game_code>', methods=['GET'])
def get_game_state(game_code):
    room = moves.get_wheel_game(moves.get_registry(), game_code)
    return jsonify(engine.public_view(room))


@wheel.route('/my-games/<string:player>', methods=['GET'])
def my_games(player):
    return jsonify({'games': moves.wheel_games_for(moves.get_registry(), player)})


@wheel.route('/games/<string:game_code>/play', methods=['POST'])
def play(game_code):
    data = json_object(request.get_json(silent=True))
    player = data.get('player')
    action = data.get('action')
    if not all([player, action]):
        return jsonify({'success': False, 'error': 'player and action are required'}), 400

    room, message, extra = moves.submit_wheel_move(
        moves.get_registry(), game_code, player, action, data.get('data') or {},
        broadcaster=moves.get_broadcaster())
    current_app.logger.info(f"[play] game={room.code} player={player} action={action} -> {message}")
    payload = {'success': True, 'message': message, 'game': engine.public_view(room)}
    payload.update(extra)
    return jsonify(payload)
