# backend/laundrypos/__init__.py
from flask import Flask

from .config import Config
from .extensions import db
from .context import build_terminal, get_terminal, close_terminal, TerminalContext
from .services.local_store import StorageUnavailable


def create_app(config_overrides: dict | None = None, *, transport=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)

    # Import models so create_all() sees every table
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.terminal import terminal_bp
    from .routes.sync import sync_bp
    from .routes.timekeeping import timekeeping_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(terminal_bp)
    app.register_blueprint(sync_bp)
    app.register_blueprint(timekeeping_bp)
    app.register_blueprint(admin_bp)

    # One terminal context per app; the local store is opened eagerly. A store
    # that cannot be opened leaves the app serving degraded health and saves.
    terminal = build_terminal(app, transport=transport)
    app.extensions["laundrypos"] = terminal
    with app.app_context():
        try:
            terminal.store.open()
        except StorageUnavailable:
            app.logger.exception("Local store could not be opened at startup")

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app


__all__ = ["create_app", "get_terminal", "close_terminal", "TerminalContext"]
