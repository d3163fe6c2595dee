import logging
import os
from dotenv import load_dotenv


def load_config(app, overrides=None):
    load_dotenv()

    app.config['SECRET_KEY'] = os.getenv('FLASK_SECRET_KEY', 'default-secret-key')
    app.config['APP_ENV'] = os.getenv('APP_ENV', 'development')
    app.config['HOST'] = os.getenv('HOST', '0.0.0.0')
    app.config['PORT'] = int(os.getenv('PORT', '5000'))
    app.config['CORS_ORIGINS'] = parse_origins(os.getenv('CORS_ORIGINS', '*'))
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO').upper()
    app.config['SOCKETIO_ASYNC_MODE'] = os.getenv('SOCKETIO_ASYNC_MODE', 'threading')
    app.config['MAX_MESSAGE_LENGTH'] = int(os.getenv('MAX_MESSAGE_LENGTH', '5000'))

    if overrides:
        app.config.update(overrides)


def parse_origins(value):
    origins = [origin.strip() for origin in (value or '').split(',') if origin.strip()]
    if not origins or origins == ['*']:
        return '*'
    return origins


def configure_logging(level):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
