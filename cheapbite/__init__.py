"""
CheapBite – Flask application factory.
Budget cooking, food labels and a small social network around them.
"""
import logging
import os

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from cheapbite.config import config
from cheapbite.errors import CheapBiteError
from cheapbite.extensions import csrf, db, limiter, login_manager, migrate, scheduler

log = logging.getLogger(__name__)


def create_app(config_name: str = "default") -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name])

    # Ensure instance directory exists (SQLite and local media live here)
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Initialise extensions ────────────────────────────────────────────────
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)
    migrate.init_app(app, db)

    if app.config.get("TALISMAN_ENABLED"):
        from flask_talisman import Talisman
        Talisman(app, **app.config.get("TALISMAN_CONFIG", {}))

    _init_login(app)

    # ── Register blueprints ──────────────────────────────────────────────────
    from cheapbite.blueprints.auth import auth_bp
    from cheapbite.blueprints.profiles import profiles_bp
    from cheapbite.blueprints.feed import feed_bp
    from cheapbite.blueprints.notifications import notif_bp
    from cheapbite.blueprints.messages import messages_bp
    from cheapbite.blueprints.events import events_bp
    from cheapbite.blueprints.generation import generation_bp
    from cheapbite.blueprints.saved import saved_bp
    from cheapbite.blueprints.diagnostics import diagnostics_bp
    from cheapbite.blueprints.media import media_bp
    from cheapbite.blueprints.volunteers import volunteers_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(profiles_bp)
    app.register_blueprint(feed_bp)
    app.register_blueprint(notif_bp)
    app.register_blueprint(messages_bp)
    app.register_blueprint(events_bp)
    app.register_blueprint(generation_bp)
    app.register_blueprint(saved_bp)
    app.register_blueprint(diagnostics_bp)
    app.register_blueprint(media_bp)
    app.register_blueprint(volunteers_bp)

    _register_error_handlers(app)

    # ── Database ─────────────────────────────────────────────────────────────
    with app.app_context():
        # importlib keeps the local 'app' name pointing at the Flask instance.
        import importlib
        importlib.import_module("cheapbite.models")
        db.create_all()

    # ── Background scheduler (notification fan-out, generation jobs) ─────────
    if app.config.get("START_SCHEDULER") and not scheduler.running:
        scheduler.start()
        log.info("Background scheduler started")

    return app


def _init_login(app: Flask) -> None:
    from cheapbite.models.user import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, user_id)

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(error="unauthorized", message="Sign in to continue"), 401


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(CheapBiteError)
    def cheapbite_error(e):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def http_error(e):
        kind = (e.name or "error").lower().replace(" ", "_")
        return jsonify(error=kind, message=e.description), e.code

    @app.errorhandler(500)
    def internal_error(e):
        db.session.rollback()
        log.error("Unhandled error", exc_info=getattr(e, "original_exception", None) or e)
        return jsonify(error="internal", message="Something went wrong"), 500
