from __future__ import annotations

import re
from typing import Iterable, List

from schemas.sms import RawMessage, SanitizedMessage


LONG_DIGITS_RE = re.compile(r"(?<!\d)\d{10,}(?!\d)")
EMAIL_RE = re.compile(r"[\w.+-]+@[\w.-]+\.\w+")
URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)

MASKED_TOKEN = "[MASKED]"
EMAIL_TOKEN = "[EMAIL]"
URL_TOKEN = "[URL]"


def sanitize_body(body: str) -> str:
    """Mask phone/account numbers, emails and links.

    Amounts, dates, keywords and short card tails (XX1234) are left intact.
    """
    s = LONG_DIGITS_RE.sub(MASKED_TOKEN, body or "")
    s = EMAIL_RE.sub(EMAIL_TOKEN, s)
    s = URL_RE.sub(URL_TOKEN, s)
    return s


def sanitize(messages: Iterable[RawMessage]) -> List[SanitizedMessage]:
    return [
        SanitizedMessage(
            index=position,
            sender=sanitize_body(m.sender or ""),
            body=sanitize_body(m.body),
            original_id=m.id,
        )
        for position, m in enumerate(messages, start=1)
    ]
