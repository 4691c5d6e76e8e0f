from flask import Flask

from .config import load_config
from .extensions import init_extensions
from .logging_config import configure_logging


def create_app(config=None, *, store=None, verify_token=None):
    """App factory entrypoint.

    Tests pass an in-memory ``store`` and a stub ``verify_token``; production
    builds the Firestore store from the environment.
    """
    config = config or load_config()
    configure_logging(config.log_level)

    app = Flask(__name__)
    app.secret_key = config.flask_secret_key or None
    init_extensions(app, config, store=store, verify_token=verify_token)

    from .blueprints import studies_bp

    app.register_blueprint(studies_bp)
    return app
