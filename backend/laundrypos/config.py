# backend/laundrypos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Local store: SQLite file next to the terminal process
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///laundrypos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Remote backend (PostgREST / Supabase). Empty URL = offline-only terminal.
    REMOTE_URL = os.environ.get("REMOTE_URL", "")
    REMOTE_API_KEY = os.environ.get("REMOTE_API_KEY", "")
    REMOTE_TIMEOUT_SECONDS = float(os.environ.get("REMOTE_TIMEOUT_SECONDS", "10"))
    CONNECTIVITY_TIMEOUT_SECONDS = float(os.environ.get("CONNECTIVITY_TIMEOUT_SECONDS", "3"))
    TERMINAL_FORCE_OFFLINE = _env_bool("TERMINAL_FORCE_OFFLINE")

    # Sync tuning
    SESSION_CONFLICT_RETRIES = int(os.environ.get("SESSION_CONFLICT_RETRIES", "2"))
    TICKET_BATCH_SIZE = int(os.environ.get("TICKET_BATCH_SIZE", "5"))

    # Ticket numbering
    TICKET_NUMBER_PAD = int(os.environ.get("TICKET_NUMBER_PAD", "3"))
    DEFAULT_TICKET_COUNT = int(os.environ.get("DEFAULT_TICKET_COUNT", "3"))

    # Logical resource -> remote table
    REMOTE_TABLES = {
        "employees": "user_profiles",
        "inventory_items": "pos_inventory_items",
        "master_items": "master_inventory_items",
        "tickets": "pos_wash_dry_tickets",
        "sessions": "pos_sessions",
        "timesheets": "employee_timesheets",
    }
