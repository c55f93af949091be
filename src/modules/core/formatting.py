"""Text helpers shared by chat replies and reports."""

from __future__ import annotations


def format_money(amount: int, currency: str = "Rp") -> str:
    """``15000`` -> ``"Rp15.000"`` (dot as thousands separator)."""
    return f"{currency}{amount:,}".replace(",", ".")
