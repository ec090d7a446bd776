"""
API gateway: combines the auth, organizations, events and users blueprints.
This is the local entrypoint for development.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, Response, jsonify
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from community_connect.auth_service.routes import auth_bp
from community_connect.events_service.routes import events_bp
from community_connect.gateway import config
from community_connect.organizations_service.routes import organizations_bp
from community_connect.storage.base import Storage
from community_connect.storage.context import init_storage
from community_connect.users_service.routes import users_bp

# Basic console logging during API requests
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format="[%(levelname)s] %(asctime)s - %(message)s",
)


def register_error_handlers(app: Flask) -> None:
    """
    Render every error as JSON `{"message": ...}`.

    Unexpected exceptions are logged with their traceback and answered
    with a generic 500; internals never reach the client.
    """

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException) -> Tuple[Response, int]:
        return jsonify({"message": error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error: Exception) -> Tuple[Response, int]:
        logging.exception("[Gateway] Unhandled error")
        return jsonify({"message": "Internal Server Error"}), 500


def create_app(
    config_overrides: Optional[Dict[str, Any]] = None,
    storage: Optional[Storage] = None,
) -> Flask:
    """
    Application factory for creating the Flask app.

    Args:
        config_overrides (dict, optional): Flask config values applied last.
        storage (Storage, optional): Storage engine; a new in-memory one by default.

    Returns:
        Flask: The configured Flask application.
    """
    app = Flask(__name__)
    app.config.update(config.flask_config())
    if config_overrides:
        app.config.update(config_overrides)

    # Session cookies must travel with cross-origin requests from the client
    CORS(app, resources={
        r"/api/*": {
            "origins": config.CORS_ORIGINS,
            "methods": ["GET", "POST", "PUT", "DELETE", "OPTIONS"],
            "allow_headers": ["Content-Type"],
            "supports_credentials": True,
        }
    })

    init_storage(app, storage)

    # --- REGISTER BLUEPRINTS ---
    app.register_blueprint(auth_bp, url_prefix="/api")
    app.register_blueprint(organizations_bp, url_prefix="/api/organizations")
    app.register_blueprint(events_bp, url_prefix="/api/events")
    app.register_blueprint(users_bp, url_prefix="/api/user")
    logging.info("All blueprints registered successfully.")

    register_error_handlers(app)

    # --- BASIC HEALTH CHECKPOINTS ---
    @app.route("/health")
    def health() -> Tuple[Response, int]:
        """
        Health check endpoint.
        """
        return jsonify({"status": "ok"}), 200

    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=config.GATEWAY_PORT, debug=False)


if __name__ == "__main__":
    main()
