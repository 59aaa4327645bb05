# Overview: Process-wide terminal context; one explicit object instead of module-level singletons.

"""
Terminal Context

create_app() builds exactly one TerminalContext per Flask app and keeps it
in app.extensions["laundrypos"]. Routes, CLI commands and tests reach it
through get_terminal(); close_terminal() is the explicit teardown.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import Flask, current_app

from .extensions import db
from .services.local_store import LocalStore
from .services.remote_service import RemoteBackend, Connectivity
from .services.session_service import SessionManager
from .services.ticket_service import TicketSequencer
from .services.sync_service import SyncOrchestrator


EXTENSION_KEY = "laundrypos"


@dataclass
class TerminalContext:
    store: LocalStore
    remote: RemoteBackend
    connectivity: Connectivity
    sessions: SessionManager
    sequencer: TicketSequencer
    sync: SyncOrchestrator


def build_terminal(app: Flask, *, transport=None) -> TerminalContext:
    config = app.config
    store = LocalStore()
    remote = RemoteBackend(
        config["REMOTE_URL"],
        config["REMOTE_API_KEY"],
        tables=config["REMOTE_TABLES"],
        timeout=config["REMOTE_TIMEOUT_SECONDS"],
        transport=transport,
    )
    connectivity = Connectivity(
        config["REMOTE_URL"],
        force_offline=config["TERMINAL_FORCE_OFFLINE"],
        timeout=config["CONNECTIVITY_TIMEOUT_SECONDS"],
        transport=transport,
    )
    sessions = SessionManager(store, remote, conflict_retries=config["SESSION_CONFLICT_RETRIES"])
    sequencer = TicketSequencer(store, pad=config["TICKET_NUMBER_PAD"])
    sync = SyncOrchestrator(store, remote, connectivity, sessions, ticket_batch_size=config["TICKET_BATCH_SIZE"])
    return TerminalContext(store, remote, connectivity, sessions, sequencer, sync)


def get_terminal(app: Flask | None = None) -> TerminalContext:
    app = app or current_app
    return app.extensions[EXTENSION_KEY]


def close_terminal(app: Flask) -> None:
    """Close the HTTP client and dispose the database engine. Safe to call twice."""
    terminal = app.extensions.pop(EXTENSION_KEY, None)
    if terminal is None:
        return
    terminal.remote.close()
    with app.app_context():
        db.session.remove()
        db.engine.dispose()
