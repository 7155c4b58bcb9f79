from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or []
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Game services live on the app, not in module globals
    from familygames.services.games.broadcast import ConnectionTracker, SocketBroadcaster
    from familygames.services.games.flavor import FlavorTextClient
    from familygames.services.games.registry import GameRegistry, SqlRoomStore

    tracker = ConnectionTracker()
    flask_app.extensions['game_registry'] = GameRegistry(SqlRoomStore())
    flask_app.extensions['connections'] = tracker
    flask_app.extensions['broadcaster'] = SocketBroadcaster(socketio, tracker)
    flask_app.extensions['flavor_text'] = FlavorTextClient.from_config(flask_app.config)

    # Import and register blueprints here
    from familygames.main import main
    flask_app.register_blueprint(main)

    from familygames.api.tile import tile
    flask_app.register_blueprint(tile, url_prefix='/api/tile')

    from familygames.api.wheel import wheel
    flask_app.register_blueprint(wheel, url_prefix='/api/wheel')

    # Register Socket.IO event handlers
    from familygames.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops and recreates the game tables."""
        import familygames.models  # noqa: F401
        with flask_app.app_context():
            db.drop_all()
            db.create_all()
            click.echo('Database has been reset!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
