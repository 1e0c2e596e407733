"""Grounding of extractor output against the untouched original message.

Every field the extractor returns is re-derived from the original SMS body:
card tail digits must literally occur in it, amounts must match a currency
amount printed in it. Candidates that cannot be tied to their message are
dropped, and their messages stay eligible for the next sync.
"""
from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

from schemas.sms import ExtractionCandidate, RawMessage, ValidatedBillFact
from services import config
from services.json_logger import get_json_logger
from sms_bills.amounts import find_card_tail, relative_gap, scan_amounts


logger = get_json_logger("sms_bills.grounding")


def _resolve_original(candidate: ExtractionCandidate, originals: Sequence[RawMessage]) -> Optional[RawMessage]:
    position = (candidate.index or 1) - 1
    if position < 0 or position >= len(originals):
        return None
    return originals[position]


def ground_card_tail(candidate_tail: Optional[str], body: str) -> Optional[str]:
    if candidate_tail:
        if candidate_tail.lower() in body.lower():
            return candidate_tail
        return None
    return find_card_tail(body)


def ground_amount(
    candidate_amount: Optional[float],
    body: str,
    tolerance: float = config.AMOUNT_MATCH_TOLERANCE,
) -> Optional[float]:
    """Keep the extracted amount when the message backs it up, else use the largest printed amount.

    The total due is conventionally the largest figure on a statement SMS.
    With no currency amounts in the message the extracted value is kept as is.
    """
    found = scan_amounts(body)
    if not found:
        return candidate_amount
    if candidate_amount:
        if any(relative_gap(a, candidate_amount) < tolerance for a in found):
            return candidate_amount
    return max(found)


def due_date_is_plausible(due: date, today: date) -> bool:
    days = (due - today).days
    return -config.DUE_DATE_MAX_PAST_DAYS <= days <= config.DUE_DATE_MAX_FUTURE_DAYS


def ground(
    candidates: Sequence[ExtractionCandidate],
    originals: Sequence[RawMessage],
    today: Optional[date] = None,
) -> List[ValidatedBillFact]:
    today = today or date.today()
    validated: List[ValidatedBillFact] = []

    for candidate in candidates:
        original = _resolve_original(candidate, originals)
        if original is None:
            logger.warning("grounding_no_original", extra={"extra": {"index": candidate.index, "batch_size": len(originals)}})
            continue

        body = original.body or ""

        card_tail = ground_card_tail(candidate.card_last4, body)
        if card_tail is None:
            logger.warning(
                "grounding_card_tail_rejected",
                extra={"extra": {"sms_id": original.id, "candidate_tail": candidate.card_last4}},
            )
            continue

        amount = ground_amount(candidate.amount, body)
        if amount != candidate.amount:
            logger.info(
                "grounding_amount_corrected",
                extra={"extra": {"sms_id": original.id, "extracted": candidate.amount, "grounded": amount}},
            )

        if candidate.due_date is not None and not due_date_is_plausible(candidate.due_date, today):
            # Policy: suspicious but kept; statements can be re-sent late
            logger.warning(
                "grounding_due_date_out_of_range",
                extra={"extra": {"sms_id": original.id, "due_date": candidate.due_date.isoformat()}},
            )

        validated.append(
            ValidatedBillFact(
                index=candidate.index or 1,
                card_last4=card_tail,
                amount=amount,
                due_date=candidate.due_date,
                min_due=candidate.min_due,
                sms_id=original.id,
                sms_body=body,
            )
        )

    return validated
