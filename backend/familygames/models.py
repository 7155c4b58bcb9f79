from familygames import db
from datetime import datetime, timezone
import json
import string
import random


def _utcnow():
    return datetime.now(timezone.utc)


def generate_game_code(prefix, length=6):
    """Generate a unique, shareable game code such as TILE-4F7KQ2."""
    while True:
        code = prefix + '-' + ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Game.query.filter_by(code=code).first():
            return code


class Game(db.Model):
    __tablename__ = 'game'
    code = db.Column(db.String(16), primary_key=True)
    kind = db.Column(db.String(16), nullable=False, index=True)  # tile, wheel
    players = db.Column(db.Text, nullable=False, default='[]')  # JSON-encoded list of names, turn order
    current_player = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(32), nullable=False, default='waiting', index=True)  # waiting, playing, finished, completed
    state = db.Column(db.Text, nullable=False)  # JSON-encoded game-specific document
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    moves = db.relationship('Move', backref='game', lazy='dynamic', order_by='Move.id')

    def to_dict(self):
        return {
            'game_code': self.code,
            'kind': self.kind,
            'players': json.loads(self.players) if self.players else [],
            'current_player': self.current_player,
            'status': self.status,
            'state': json.loads(self.state) if self.state else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }


class Move(db.Model):
    """Append-only audit log of accepted moves."""
    __tablename__ = 'move'
    id = db.Column(db.Integer, primary_key=True)
    game_code = db.Column(db.String(16), db.ForeignKey('game.code'), nullable=False, index=True)
    player = db.Column(db.String(64), nullable=False)
    move_type = db.Column(db.String(32), nullable=False)
    move_data = db.Column(db.Text, nullable=True)  # JSON-encoded payload
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'game_code': self.game_code,
            'player': self.player,
            'move_type': self.move_type,
            'move_data': json.loads(self.move_data) if self.move_data else None,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
