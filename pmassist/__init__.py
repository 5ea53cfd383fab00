"""
Program Management Assistant
Flask Application Factory.

Usage:
    from pmassist import create_app
    app = create_app()           # defaults to "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from pmassist.config import config
from pmassist.core.exceptions import NotFoundError
from pmassist.middleware.logging_config import configure_logging
from pmassist.middleware.timing import init_request_timing
from pmassist.models import db
from pmassist.utils.errors import EXCEPTION_CODES, E, api_error, error_response

logger = logging.getLogger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],  # AI route only
    storage_uri=os.getenv("RATELIMIT_STORAGE_URI", "memory://"),
)


def _register_error_handlers(app):
    for exc_type in EXCEPTION_CODES:
        app.register_error_handler(exc_type, _handle_domain_error)

    @app.errorhandler(404)
    def not_found(e):
        return api_error(E.NOT_FOUND, "Not found", details={"path": request.path})

    @app.errorhandler(405)
    def method_not_allowed(e):
        return api_error(E.METHOD_NOT_ALLOWED, "Method not allowed")

    @app.errorhandler(429)
    def rate_limited(e):
        return api_error(E.RATE_LIMITED, "Too many requests", details={"limit": e.description})

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return api_error(E.INTERNAL, "Internal server error")


def _handle_domain_error(exc):
    if isinstance(exc, NotFoundError):
        logger.info("Not found: %s", exc, extra={"program_id": exc.program_id})
    return error_response(exc)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    init_request_timing(app)

    # ── Storage + dashboard state ────────────────────────────────────────
    from pmassist.models import storage as _storage_models  # noqa: F401
    from pmassist.services.workspace import init_workspace

    with app.app_context():
        if app.config.get("STORAGE_BACKEND") == "sql":
            uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
            if uri.startswith("sqlite:///") and ":memory:" not in uri:
                os.makedirs(os.path.dirname(uri.removeprefix("sqlite:///")), exist_ok=True)
            db.create_all()
        init_workspace(app)

    # ── Blueprints ───────────────────────────────────────────────────────
    from pmassist.blueprints.ai_bp import ai_bp
    from pmassist.blueprints.board_bp import board_bp
    from pmassist.blueprints.health_bp import health_bp
    from pmassist.blueprints.program_bp import program_bp

    app.register_blueprint(program_bp)
    app.register_blueprint(board_bp)
    app.register_blueprint(ai_bp)
    app.register_blueprint(health_bp)

    _register_error_handlers(app)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("migrate-flat-storage")
    def migrate_flat_storage_cmd():
        """Move flat "programs"/"tasks"/"risks" keys into the nested record."""
        from pmassist.services.schema import migrate_flat_schema
        from pmassist.services.workspace import get_workspace

        workspace = get_workspace()
        record = migrate_flat_schema(workspace.state.adapter)
        if record is None:
            logger.info("Nothing to migrate.")
            return
        workspace.load()
        logger.info("Migrated %d programs.", len(record["programs"]))

    return app
