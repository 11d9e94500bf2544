"""
Phone number normalization.

User documents are keyed by phone number, so every form a caller might
send ("(123) 456-7890", "123-456-7890", "+1 123 456 7890") has to land on
the same key.
"""

from __future__ import annotations

import re
from typing import Optional

_NON_DIGITS = re.compile(r"\D")

DEFAULT_COUNTRY_CODE = "1"


def normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Returns the canonical "+<digits>" form of a phone number, or None.

    Ten digit numbers get the default country code. Other lengths are
    accepted as-is with a leading "+", so this is not a strict validator.
    None is returned only when there is nothing to normalize.
    """
    if not phone:
        return None

    digits = _NON_DIGITS.sub("", str(phone))
    if not digits:
        return None

    if len(digits) == 10:
        return f"+{DEFAULT_COUNTRY_CODE}{digits}"

    if len(digits) == 11 and digits.startswith(DEFAULT_COUNTRY_CODE):
        return f"+{digits}"

    # Already-canonical input ("+44...") lands here too and keeps its "+".
    return f"+{digits}"
