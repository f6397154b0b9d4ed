"""Tracking codes shown to submitters and approvers."""

import random
import re
import unicodedata

FALLBACK_PREFIX = "IMG"
PREFIX_FILLER = "X"

_NON_ALPHA = re.compile(r"[^A-Za-z]")


def strip_diacritics(value: str) -> str:
    """Remove combining marks, so "Évora" becomes "Evora"."""
    decomposed = unicodedata.normalize("NFD", value)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def tracking_prefix(event_name: str) -> str:
    """Return the three-letter prefix derived from an event name."""
    letters = _NON_ALPHA.sub("", strip_diacritics(event_name)).upper()
    return (letters[:3] or FALLBACK_PREFIX).ljust(3, PREFIX_FILLER)


def generate_tracking_code(event_name: str, rng: random.Random | None = None) -> str:
    """Build a code like ``#GAL-1234``. Codes are not guaranteed unique."""
    number = (rng or random).randint(1000, 9999)
    return f"#{tracking_prefix(event_name)}-{number}"
