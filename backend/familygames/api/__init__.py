"""HTTP blueprints for both games."""
from flask import jsonify, current_app
from familygames.errors import GameError, RoomBusyError, RoomNotFoundError, ValidationError


def error_response(exc: GameError):
    """Map the game error taxonomy onto HTTP status codes."""
    if isinstance(exc, RoomNotFoundError):
        return jsonify({'success': False, 'error': str(exc)}), 404
    if isinstance(exc, RoomBusyError):
        return jsonify({'success': False, 'error': str(exc), 'retry': True}), 409
    if isinstance(exc, ValidationError):
        return jsonify({'success': False, 'error': str(exc)}), 400
    current_app.logger.error(f"[error] {exc.__class__.__name__}: {exc}")
    return jsonify({'success': False, 'error': 'Error processing request'}), 500


def json_object(payload) -> dict:
    """Request payload as a dict; a JSON list or scalar counts as empty."""
    return payload if isinstance(payload, dict) else {}
