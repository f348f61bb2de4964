"""Normalization helpers for raw slip fields.

`parse_amount` turns the free-form amount text read off a slip into a number
and never raises. `canonicalize_bank_name` folds spelling and abbreviation
variants of known banks into one label using an ordered rule list.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional, Pattern, Tuple

_NON_NUMERIC = re.compile(r"[^0-9.\-]+")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")

# Checked top to bottom, first match wins. Short Latin codes only need to
# stand apart from other Latin letters; Thai text may touch them.
BANK_NAME_RULES: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"krungsri|กรุงศรี|(?<![a-z])bay(?![a-z])", re.IGNORECASE), "กรุงศรี"),
    (re.compile(r"กสิกร|kasikorn|(?<![a-z])kbank(?![a-z])", re.IGNORECASE), "กสิกรไทย"),
    (re.compile(r"scb|ไทยพาณิชย์|siam commercial", re.IGNORECASE), "ไทยพาณิชย์"),
    (re.compile(r"กรุงไทย|krung\s*thai|(?<![a-z])ktb(?![a-z])", re.IGNORECASE), "กรุงไทย"),
    (re.compile(r"กรุงเทพ|bangkok bank|(?<![a-z])bbl(?![a-z])", re.IGNORECASE), "กรุงเทพ"),
]


def parse_amount(raw: Optional[str]) -> float:
    """Parse slip amount text such as "1,234.50 THB" into 1234.5.

    Every character other than digits, '.' and '-' is dropped and the longest
    leading decimal number is parsed. Empty, unparsable, negative or
    out-of-range input yields 0.0.
    """
    if not raw:
        return 0.0
    cleaned = _NON_NUMERIC.sub("", str(raw))
    match = _LEADING_NUMBER.match(cleaned)
    if match is None:
        return 0.0
    try:
        value = float(match.group(0))
    except ValueError:
        return 0.0
    if not math.isfinite(value):
        return 0.0
    return value if value > 0 else 0.0


def canonicalize_bank_name(raw: Optional[str]) -> str:
    """Return the canonical label for a bank name, or the trimmed input."""
    name = (raw or "").strip()
    for pattern, canonical in BANK_NAME_RULES:
        if pattern.search(name):
            return canonical
    return name
