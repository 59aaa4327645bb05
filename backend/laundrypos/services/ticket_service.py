# Overview: Ticket numbering and wash/dry ticket edits against local history.

"""
Ticket Sequencer

Ticket numbers are human-facing display sequences scoped to ALL local
ticket history (not per session), zero-padded to TICKET_NUMBER_PAD digits.
Past the padding width the number simply grows ("1000"), never truncates.

Uniqueness is NOT guaranteed. The timestamp fallback used when no history
is available can collide; duplicate checks are advisory and per session.
"""

from __future__ import annotations

import time

from flask import current_app

from ..models import SESSION_COMPLETED
from .local_store import StorageUnavailable


class TicketError(ValueError):
    """Raised for invalid ticket operations."""
    pass


def format_ticket_number(number: int, pad: int = 3) -> str:
    return f"{number:0{pad}d}"


def parse_ticket_number(value) -> int | None:
    text = str(value if value is not None else "").strip()
    if not text.isdigit():
        return None
    return int(text)


class TicketSequencer:
    def __init__(self, store, *, pad: int = 3, clock=time.time):
        self.store = store
        self.pad = pad
        self._clock = clock

    def last_number(self) -> int | None:
        """Highest parseable ticket number in local history, or None."""
        try:
            tickets = self.store.get_all("tickets", strict=True)
        except StorageUnavailable as exc:
            current_app.logger.warning("Ticket history unavailable: %s", exc)
            return None
        numbers = [n for n in (parse_ticket_number(t.ticket_number) for t in tickets) if n is not None]
        return max(numbers) if numbers else None

    def generate_next(self, count: int = 3) -> list[str]:
        """
        Next `count` ticket numbers after the highest one in local history.

        Empty or unavailable history falls back to the last digits of the
        current timestamp (best effort only).
        """
        if count < 1:
            return []
        last = self.last_number()
        if last is None:
            base = int(self._clock() * 1000)
            current_app.logger.warning("No ticket history, using timestamp-based ticket numbers")
            return [str(base + i)[-self.pad:].zfill(self.pad) for i in range(count)]
        return [format_ticket_number(last + i, self.pad) for i in range(1, count + 1)]


def is_duplicate_in_session(store, session_id: str, ticket_number: str, *, exclude_id: str | None = None) -> bool:
    """Advisory check: is this number already used by another ticket of the same session?"""
    wanted = str(ticket_number).strip()
    parsed = parse_ticket_number(wanted)
    for ticket in store.get_all("tickets", session_id=session_id):
        if exclude_id and ticket.id == exclude_id:
            continue
        existing = str(ticket.ticket_number).strip()
        if existing == wanted:
            return True
        if parsed is not None and parse_ticket_number(existing) == parsed:
            return True
    return False


def _require_editable_session(store, session_id: str):
    session = store.get("sessions", session_id)
    if session is None:
        raise TicketError("Session not found")
    if session.status == SESSION_COMPLETED:
        raise TicketError("Session is completed and can no longer be edited")
    return session


def record_ticket(
    store,
    session_id: str,
    *,
    ticket_number: str,
    wash: float = 0,
    dry: float = 0,
    ticket_id: str | None = None,
):
    """Create or edit a wash/dry ticket. total_amount is recomputed by the store."""
    if not str(ticket_number or "").strip():
        raise TicketError("ticket_number is required")
    if (wash or 0) < 0 or (dry or 0) < 0:
        raise TicketError("Ticket amounts cannot be negative")

    _require_editable_session(store, session_id)

    if ticket_id is not None:
        existing = store.get("tickets", ticket_id)
        if existing is None or existing.session_id != session_id:
            raise TicketError("Ticket not found")

    values = {
        "session_id": session_id,
        "ticket_number": str(ticket_number).strip(),
        "wash_amount": wash or 0,
        "dry_amount": dry or 0,
    }
    if ticket_id:
        values["id"] = ticket_id
    return store.put("tickets", values)


def start_shift_tickets(store, sequencer: TicketSequencer, session_id: str, count: int = 3) -> list:
    """Blank tickets for a fresh shift, numbered by the sequencer."""
    _require_editable_session(store, session_id)
    numbers = sequencer.generate_next(count)
    with store.atomic():
        return [
            store.put("tickets", {"session_id": session_id, "ticket_number": number, "wash_amount": 0, "dry_amount": 0})
            for number in numbers
        ]
