from __future__ import annotations

import uuid


def new_id() -> str:
    """Random UUID4 string used as primary key for every locally created record."""
    return str(uuid.uuid4())


def money(value) -> float:
    """Round a currency amount to cents (None counts as zero)."""
    return round(float(value or 0), 2)


def count(value) -> int:
    """Coerce a stock count field (None counts as zero)."""
    return int(value or 0)
