import logging
import os

from flask import Flask, jsonify, request
from flask_caching import Cache
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException

from config import config

logger = logging.getLogger(__name__)

db = SQLAlchemy()
cache = Cache()
migrate = Migrate()


def get_real_ip():
    """
    Get the real client IP address, accounting for reverse proxies.
    Checks X-Forwarded-For, X-Real-IP, and falls back to remote_addr.
    """
    if request.headers.get("X-Forwarded-For"):
        return request.headers.get("X-Forwarded-For").split(",")[0].strip()
    if request.headers.get("X-Real-IP"):
        return request.headers.get("X-Real-IP")
    return get_remote_address()


limiter = Limiter(key_func=get_real_ip)


def create_app(config_name=None):
    app = Flask(__name__)

    # Determine configuration
    if config_name is None:
        config_name = os.environ.get("FLASK_CONFIG", "default")

    app.config.from_object(config[config_name]())
    app.json.ensure_ascii = False

    # Initialize extensions
    db.init_app(app)
    cache.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)

    # Import and register blueprints
    from predictor_tracker.routes.api import bp as api_bp

    app.register_blueprint(api_bp, url_prefix="/api")

    @app.route("/health")
    def health():
        from predictor_tracker.utils.timezone_utils import utcnow

        return jsonify(
            {
                "status": "OK",
                "timestamp": utcnow().isoformat(),
                "message": "Tournament predictor tracker is running",
            }
        )

    # Register error handlers
    register_error_handlers(app)

    # Setup logging
    from predictor_tracker.utils.logging_config import setup_logging

    setup_logging(app)

    # Create database tables
    with app.app_context():
        db.create_all()

    # Initialize and start background scheduler
    if not app.config.get("TESTING", False):
        from predictor_tracker.services.scheduler_service import scheduler_service

        scheduler_service.init_app(app)

    return app


def register_error_handlers(app):
    """Register global error handlers"""
    from predictor_tracker.errors import TrackerError

    @app.after_request
    def after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    @app.errorhandler(TrackerError)
    def handle_tracker_error(error):
        db.session.rollback()
        app.logger.warning(
            f"{type(error).__name__}: {error.message} - Path: {request.path} - Method: {request.method}"
        )
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if request.path.startswith("/api/"):
            messages = {
                404: "Route not found",
                405: "Method not allowed",
                429: "Too many requests",
            }
            message = messages.get(error.code, error.description or "Bad request")
            return jsonify({"success": False, "error": message}), error.code
        return error

    @app.errorhandler(Exception)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(
            f"Unhandled error on {request.method} {request.path}: {error}",
            exc_info=True,
        )
        return jsonify({"success": False, "error": "Internal server error"}), 500


from predictor_tracker import models  # noqa: F401, E402 - imported for model registration
