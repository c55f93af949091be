"""Input parsing for conversation steps."""

from __future__ import annotations

import re
from typing import Optional

from modules.conversations.constants import CANCEL_WORDS, PRODUCT_FORM
from modules.conversations.exceptions import EmptyInput, NotANumber

MAX_AMOUNT_DIGITS = 18

_PLAIN = re.compile(r"[0-9]{1,%d}" % MAX_AMOUNT_DIGITS)
# Groups of three after a 1-3 digit head, one separator used throughout.
_GROUPED = re.compile(r"[0-9]{1,3}([.,\s])[0-9]{3}(?:\1[0-9]{3}){0,4}")
_SEPARATORS = re.compile(r"[.,\s]")


def is_cancel(text: Optional[str]) -> bool:
    """``batal`` / ``cancel`` in any case, with or without a leading slash."""
    if not text:
        return False
    return text.strip().lstrip("/").lower() in CANCEL_WORDS


def parse_amount(text: Optional[str]) -> int:
    """Parse a non-negative integer, tolerating thousands separators.

    ``"15000"``, ``"15.000"`` and ``"15,000"`` all give ``15000``.  A
    separator is only accepted between complete groups of three digits,
    so ``"1.5"`` and ``"12,50"`` are rejected.  At most 18 digits.

    Raises:
        NotANumber: anything else, including negative numbers.
    """
    value = (text or "").strip()
    message = f"'{_preview(text)}' is not a non-negative whole number."
    if not (_PLAIN.fullmatch(value) or _GROUPED.fullmatch(value)):
        raise NotANumber(message)
    try:
        return int(_SEPARATORS.sub("", value))
    except ValueError as exc:
        raise NotANumber(message) from exc


def _preview(text: Optional[str], limit: int = 32) -> str:
    value = text or ""
    return value if len(value) <= limit else value[:limit] + "..."


def require_text(text: Optional[str]) -> str:
    value = (text or "").strip()
    if not value:
        raise EmptyInput("Please send a non-empty text.")
    return value


def next_form_step(step: str) -> Optional[str]:
    """Return the step after *step* in the add-product form, or ``None``."""
    index = PRODUCT_FORM.index(step)
    if index + 1 < len(PRODUCT_FORM):
        return PRODUCT_FORM[index + 1]
    return None
