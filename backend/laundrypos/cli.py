# Overview: Flask CLI command groups for the terminal; store bootstrap/inspection, manual save, ticket numbers.

# backend/laundrypos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Local store:
# - python -m flask store init
#   Create any missing local tables (idempotent).
# - python -m flask store status
#   Show total and unsynced record counts per collection, plus connectivity.
#
# Sync:
# - python -m flask sync save --employee-id <uuid> [--date 2026-01-31]
#   Run the Save workflow once (same as the terminal's Save button).
#
# Tickets:
# - python -m flask tickets next --count 3
#   Preview the next ticket numbers from local history.

import click
from flask.cli import with_appcontext

from .context import get_terminal
from .services.local_store import StorageUnavailable


@click.group('store')
def store_group():
    """Local store bootstrap and inspection."""


@store_group.command('init')
@with_appcontext
def init_store():
    """Create missing local tables."""
    try:
        get_terminal().store.open()
    except StorageUnavailable as e:
        raise click.ClickException(str(e))
    click.echo("OK Local store ready")


@store_group.command('status')
@with_appcontext
def store_status():
    """Show record counts per collection."""
    terminal = get_terminal()
    try:
        terminal.store.ensure_available()
    except StorageUnavailable as e:
        raise click.ClickException(str(e))

    counts = terminal.store.counts()
    click.echo("\n" + "=" * 40)
    click.echo(f"{'Collection':<14} {'Total':>10} {'Unsynced':>12}")
    click.echo("=" * 40)
    for name, row in counts.items():
        click.echo(f"{name:<14} {row['total']:>10} {row['unsynced']:>12}")
    click.echo("=" * 40)
    click.echo(f"Remote: {'online' if terminal.connectivity.is_online() else 'offline'}\n")


@click.group('sync')
def sync_group():
    """Manual sync commands."""


@sync_group.command('save')
@click.option('--employee-id', default=None, help='Employee whose session is saved')
@click.option('--date', 'session_date', default=None, help='Session date (YYYY-MM-DD, default today)')
@with_appcontext
def save(employee_id, session_date):
    """Run the Save workflow once."""
    try:
        outcome = get_terminal().sync.save(employee_id, session_date)
    except StorageUnavailable as e:
        raise click.ClickException(str(e))

    click.echo(f"[{outcome.status}] {outcome.message}")
    if outcome.session_id:
        click.echo(f"Session: {outcome.session_id}")
    for collection, uploaded in outcome.uploaded.items():
        click.echo(f"  {collection}: {uploaded} uploaded")
    if not outcome.ok:
        raise SystemExit(1)


@click.group('tickets')
def tickets_group():
    """Ticket numbering commands."""


@tickets_group.command('next')
@click.option('--count', default=None, type=int, help='How many numbers to generate')
@with_appcontext
def next_numbers(count):
    """Preview the next ticket numbers."""
    from flask import current_app

    count = count if count is not None else current_app.config["DEFAULT_TICKET_COUNT"]
    for number in get_terminal().sequencer.generate_next(count):
        click.echo(number)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(store_group)
    app.cli.add_command(sync_group)
    app.cli.add_command(tickets_group)
