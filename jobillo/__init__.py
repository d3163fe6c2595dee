from flask import Flask, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException
from .config import configure_logging, load_config
from .sockets.socketio import socketio


def create_app(overrides=None) -> Flask:
    app = Flask(__name__)

    load_config(app, overrides)
    configure_logging(app.config['LOG_LEVEL'])

    CORS(app, resources={r"/api/*": {"origins": app.config['CORS_ORIGINS']}})

    # Socket.IO handlers must be bound before init_app creates the server
    from .sockets import events  # noqa: F401

    socketio.init_app(
        app,
        cors_allowed_origins=app.config['CORS_ORIGINS'],
        async_mode=app.config['SOCKETIO_ASYNC_MODE'],
        logger=False,
        engineio_logger=False,
        ping_timeout=60,
        ping_interval=25,
    )

    # Register Flask routes
    from .routes.api import bp as api_bp
    app.register_blueprint(api_bp)

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        if request.path.startswith('/api/'):
            return {"error": e.description}, e.code
        return e

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        app.logger.exception("Unhandled error on %s", request.path)
        return {"error": "Server error"}, 500

    return app
