import os
import sys
import pytest

# Ensure the backend root (containing the `familygames` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from familygames import create_app, db, socketio
from familygames.services.games.turns import PLAYING, WAITING, Room


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:5173']
    TILE_INITIAL_MELD_POINTS = 30
    TILE_HAND_SIZE = 14
    WHEEL_PLAYERS = ['Peepo', 'Nachito', 'Fer']
    FLAVOR_TEXT_URL = ''


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import familygames.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['game_registry']


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


class MemoryRoomStore:
    """RoomStore keeping plain dict snapshots, for registry tests without a database."""

    def __init__(self):
        self.rows = {}
        self.moves = []
        self.fail_next_save = False
        self._counter = 0

    def load(self, code):
        room = self.rows.get(code)
        return room.draft() if room else None

    def save(self, room, move=None):
        from familygames.errors import PersistenceError
        if self.fail_next_save:
            self.fail_next_save = False
            raise PersistenceError('disk on fire')
        self.rows[room.code] = room.draft()
        if move is not None:
            self.moves.append((room.code,) + tuple(move))

    def new_code(self, prefix):
        self._counter += 1
        return f'{prefix}-{self._counter:06d}'

    def find(self, kind, status=None):
        return [r.draft() for r in self.rows.values()
                if r.kind == kind and (status is None or r.status == status)]


@pytest.fixture()
def memory_store():
    return MemoryRoomStore()


def _make_tile_room(state, players=('Ana', 'Beto'), current=None, code='TILE-TEST01'):
    players = list(players)
    return Room(
        code=code,
        kind='tile',
        players=players,
        status=PLAYING if len(players) == 2 else WAITING,
        current_player=current or players[0],
        state=state,
    )


@pytest.fixture()
def make_tile_room():
    return _make_tile_room
