from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from schemas.ledger import Card
from schemas.sms import LinkedBill, ValidatedBillFact
from services.json_logger import get_json_logger


logger = get_json_logger("sms_bills.linker")


def new_entity_id() -> str:
    return uuid.uuid4().hex


def build_placeholder_card(tail: str) -> Card:
    return Card(
        id=new_entity_id(),
        name=f"Unknown Card XX{tail}",
        card_number=f"XXXXXXXXXXXX{tail}",
        card_type="credit",
        credit_limit=None,
        outstanding=0.0,
        is_placeholder=True,
        created_at=datetime.now(timezone.utc),
    )


def match_card(tail: str, cards: Sequence[Card]) -> Optional[Card]:
    """Find the card a statement tail refers to.

    Exact 4-digit matches win over suffix matches of shorter tails (SBI
    prints only two digits). Ties go to the first card in ledger order.
    """
    exact: List[Card] = []
    partial: List[Card] = []
    for card in cards:
        if not card.card_number:
            continue
        last4 = card.last4
        if last4 == tail:
            exact.append(card)
        elif last4.endswith(tail):
            partial.append(card)

    matches = exact or partial
    if not matches:
        return None
    if len(matches) > 1:
        logger.warning(
            "card_link_ambiguous",
            extra={"extra": {"tail": tail, "card_ids": [c.id for c in matches], "chosen": matches[0].id}},
        )
    return matches[0]


def link(facts: Sequence[ValidatedBillFact], cards: List[Card]) -> List[LinkedBill]:
    """Attach every fact to a card, creating placeholder cards for unknown tails.

    `cards` is the working card list of the run and is extended in place, so a
    tail seen several times in one run gets exactly one placeholder.
    """
    linked: List[LinkedBill] = []
    for fact in facts:
        card = match_card(fact.card_last4, cards)
        if card is None:
            card = build_placeholder_card(fact.card_last4)
            cards.append(card)
            logger.info("placeholder_card_created", extra={"extra": {"card_id": card.id, "tail": fact.card_last4}})
        linked.append(LinkedBill(card_id=card.id, fact=fact))
    return linked
