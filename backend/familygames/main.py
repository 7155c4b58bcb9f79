from flask import Blueprint, jsonify
from datetime import datetime, timezone

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the family games server!'})


@main.route('/health')
def health():
    return jsonify({
        'status': 'OK',
        'games': ['tile', 'wheel'],
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })
