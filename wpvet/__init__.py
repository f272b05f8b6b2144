import os
import logging
from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from .logging_utils import configure_logging


def create_app():
    app = Flask(__name__)

    level = configure_logging()
    logging.getLogger('werkzeug').setLevel(logging.WARNING)
    logging.getLogger(__name__).info('Logging initialized at level %s', logging.getLevelName(level))

    # Rate limiting configuration
    default_rate = os.environ.get('WPVET_RATE_LIMIT', '60 per minute')
    storage_uri = os.environ.get('WPVET_RATE_LIMIT_STORAGE', 'memory://')
    limiter = Limiter(key_func=get_remote_address, app=app, default_limits=[default_rate], storage_uri=storage_uri)

    # Expose limiter for blueprints to use specific limits
    app.extensions['limiter'] = limiter

    from .routes.api_v1 import api_v1
    app.register_blueprint(api_v1)
    return app
