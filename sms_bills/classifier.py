from __future__ import annotations

import re
from typing import Iterable, List, Optional

from schemas.sms import RawMessage


# Bank statement SMS always name the product and carry a statement/due phrase:
#   HDFC  "HDFC Bank Credit Card XX9205 Statement ... Total due: ... Pay by"
#   ICICI "ICICI Bank Credit Card XX8008 Statement ... due by"
#   Axis  "Axis Bank Credit Card no. ... Statement ... Due on: ... Total amt:"
#   SBI   "SBI Credit Card ending 85 E-statement ... Total Amt Due ... Payable by"
CREDIT_CARD_PATTERN = re.compile(r"credit\s*card", re.IGNORECASE)
BILL_KEYWORDS_PATTERN = re.compile(
    r"(statement|e-statement|total due|total amt|amt due|payment due|due by|due on|payable by|amount due)",
    re.IGNORECASE,
)

# Reminders, payment confirmations, OTPs and transaction alerts
EXCLUDE_KEYWORDS_PATTERN = re.compile(
    r"(reminder|pay now to avoid|last date to pay|avoid late|payment received|thank you for"
    r"|successfully paid|transaction alert|otp|one time password|spent|debited|credited"
    r"|transaction of|withdrawn|transferred)",
    re.IGNORECASE,
)


def matches_positive(body: str) -> bool:
    return bool(CREDIT_CARD_PATTERN.search(body)) and bool(BILL_KEYWORDS_PATTERN.search(body))


def matches_exclude(body: str) -> bool:
    return bool(EXCLUDE_KEYWORDS_PATTERN.search(body))


def is_candidate_statement(body: Optional[str]) -> bool:
    body = body or ""
    return matches_positive(body) and not matches_exclude(body)


def classify(messages: Iterable[RawMessage]) -> List[RawMessage]:
    """Keep only messages that look like credit-card billing statements."""
    return [m for m in messages if is_candidate_statement(m.body)]


def narrow(messages: Iterable[RawMessage], card_last4: Optional[str] = None) -> List[RawMessage]:
    """Restrict to messages mentioning the given trailing card digits, if any."""
    if not card_last4:
        return list(messages)
    return [m for m in messages if card_last4 in (m.body or "")]
