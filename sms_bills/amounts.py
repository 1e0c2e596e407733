from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, List, Optional


# "Rs.12,550", "Rs 500.00", "INR 1,23,456.7", "₹1,000.50"
CURRENCY_AMOUNT_RE = re.compile(r"(?<![A-Za-z])(?:Rs\.?|INR|₹)\s*(\d[\d,]*(?:\.\d{1,2})?)", re.IGNORECASE)
_CURRENCY_PREFIX_RE = re.compile(r"^\s*(?:Rs\.?|INR|₹)\s*", re.IGNORECASE)

# Card tail markers: XX1234, xx85, ****1234, "ending 85"
CARD_TAIL_RE = re.compile(r"(?:XX|\*{2,4}|ending\s*|x{2,4})(\d{2,4})(?!\d)", re.IGNORECASE)

_DIGITS_RE = re.compile(r"\d+")

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d-%b-%y",
    "%d %B %Y",
)


def parse_amount(value: Any) -> Optional[float]:
    """Parse a money value ("Rs.12,550", "1,000.50", 950) to a float.

    Returns None when nothing numeric can be recovered.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = _CURRENCY_PREFIX_RE.sub("", str(value))
    s = s.replace(",", "").strip()
    if s == "":
        return None
    try:
        return float(s)
    except ValueError:
        return None


def scan_amounts(body: str) -> List[float]:
    """Return every positive currency-marked amount in the message, in order."""
    found: List[float] = []
    for m in CURRENCY_AMOUNT_RE.finditer(body or ""):
        num = parse_amount(m.group(1))
        if num is not None and num > 0:
            found.append(num)
    return found


def find_card_tail(body: str) -> Optional[str]:
    """Derive the 2-4 trailing card digits from markers like XX1234 or ending 85."""
    m = CARD_TAIL_RE.search(body or "")
    if not m:
        return None
    return m.group(1)


def normalize_card_tail(value: Any) -> Optional[str]:
    """Coerce an extractor-supplied tail ("XX4521", 4521, "85") to its digits.

    Anything that does not reduce to 2-4 digits counts as absent.
    """
    if value is None or isinstance(value, bool):
        return None
    digits = "".join(_DIGITS_RE.findall(str(value)))
    if 2 <= len(digits) <= 4:
        return digits
    return None


def parse_due_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def relative_gap(a: float, b: float) -> float:
    """Relative distance between two amounts, scaled by the larger one."""
    scale = max(abs(a), abs(b))
    if scale == 0:
        return 0.0
    return abs(a - b) / scale
