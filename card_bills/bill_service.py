from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from repositories.ledger_repo import LedgerRepository
from schemas.ledger import BillRecord, Card, LedgerState, PaidType
from services.json_logger import get_json_logger
from sms_bills.amounts import parse_amount
from sms_bills.errors import BillNotFound, CardNotFound


logger = get_json_logger("card_bills")


class BillSummary(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_credit_limit: float = 0.0
    total_outstanding: float = 0.0
    total_bills_due: float = 0.0
    unpaid_bills_count: int = 0
    card_count: int = 0
    placeholder_count: int = 0


def _bill_sort_key(bill: BillRecord) -> datetime:
    if bill.due_date is not None:
        return datetime(bill.due_date.year, bill.due_date.month, bill.due_date.day, tzinfo=timezone.utc)
    if bill.parsed_at is not None:
        return bill.parsed_at if bill.parsed_at.tzinfo else bill.parsed_at.replace(tzinfo=timezone.utc)
    return datetime.min.replace(tzinfo=timezone.utc)


def _absorbs(new_card: Card, placeholder: Card) -> bool:
    # Placeholders keep only the 2-4 digits printed in the statement SMS
    tail = placeholder.card_number.lstrip("X")
    return bool(tail) and new_card.last4.endswith(tail)


class BillService:
    """Ledger-owner operations on stored bills. Each mutation saves the ledger."""

    def __init__(self, repo: LedgerRepository) -> None:
        self.repo = repo

    def _require_bill(self, state: LedgerState, bill_id: str) -> BillRecord:
        bill = state.find_bill(bill_id)
        if bill is None:
            raise BillNotFound(bill_id)
        return bill

    def list_bills(self) -> List[BillRecord]:
        return self.repo.load().card_bills

    def get_card_bills(self, card_id: str) -> List[BillRecord]:
        return [b for b in self.repo.load().card_bills if b.card_id == card_id]

    def get_unpaid_bills(self) -> List[BillRecord]:
        return [b for b in self.repo.load().card_bills if not b.is_paid]

    def mark_bill_paid(
        self,
        bill_id: str,
        paid_type: PaidType = PaidType.BILL,
        custom_amount: Any = None,
    ) -> BillRecord:
        state = self.repo.load()
        bill = self._require_bill(state, bill_id)
        card = state.find_card(bill.card_id)
        current_outstanding = (card.outstanding or 0.0) if card else 0.0

        if paid_type == PaidType.OUTSTANDING:
            paid_amount = current_outstanding
        elif paid_type == PaidType.CUSTOM:
            paid_amount = parse_amount(custom_amount) or bill.amount
        else:
            paid_amount = bill.amount

        bill.is_paid = True
        bill.paid_amount = paid_amount
        bill.paid_type = paid_type
        bill.paid_at = datetime.now(timezone.utc)

        if card is not None:
            if paid_type == PaidType.OUTSTANDING:
                card.outstanding = 0.0
            else:
                card.outstanding = max(0.0, current_outstanding - paid_amount)
            logger.info(
                "card_outstanding_reduced",
                extra={"extra": {"card_id": card.id, "before": current_outstanding, "paid": paid_amount, "after": card.outstanding}},
            )

        self.repo.save(state)
        return bill

    def mark_bill_unpaid(self, bill_id: str) -> BillRecord:
        state = self.repo.load()
        bill = self._require_bill(state, bill_id)
        bill.is_paid = False
        bill.paid_amount = None
        bill.paid_type = None
        bill.paid_at = None
        self.repo.save(state)
        return bill

    def update_bill_amount(self, bill_id: str, new_amount: Any) -> BillRecord:
        state = self.repo.load()
        bill = self._require_bill(state, bill_id)
        bill.amount = parse_amount(new_amount) or 0.0
        self.repo.save(state)
        return bill

    def delete_bill(self, bill_id: str) -> None:
        state = self.repo.load()
        bill = self._require_bill(state, bill_id)
        state.card_bills = [b for b in state.card_bills if b.id != bill.id]
        self.repo.save(state)

    def get_summary(self) -> BillSummary:
        state = self.repo.load()
        cards = [c for c in state.cards if c.card_type == "credit" and not c.is_placeholder]
        placeholders = [c for c in state.cards if c.card_type == "credit" and c.is_placeholder]
        all_card_ids: Set[str] = {c.id for c in state.cards}
        groups = state.card_groups

        # Bills of deleted cards do not count
        active_bills = [b for b in state.card_bills if b.card_id in all_card_ids]

        total_credit_limit = 0.0
        counted_limit_groups: Set[str] = set()
        for card in cards:
            group = next((g for g in groups if card.id in g.card_ids), None)
            if group is not None:
                if group.id not in counted_limit_groups:
                    total_credit_limit += group.shared_limit or 0.0
                    counted_limit_groups.add(group.id)
            else:
                total_credit_limit += card.credit_limit or 0.0

        total_outstanding = sum((c.outstanding or 0.0) for c in cards)

        # Latest unpaid bill per card; a shared-bill group counts once, via its primary card
        total_bills_due = 0.0
        unpaid_count = 0
        counted_bill_groups: Set[str] = set()
        bills_by_card: Dict[str, List[BillRecord]] = {}
        for bill in active_bills:
            bills_by_card.setdefault(bill.card_id, []).append(bill)

        for card_id, card_bills in bills_by_card.items():
            group = next((g for g in groups if card_id in g.card_ids and g.share_bill), None)
            if group is not None:
                if group.primary_card_id != card_id or group.id in counted_bill_groups:
                    continue
                counted_bill_groups.add(group.id)

            card_bills = sorted(card_bills, key=_bill_sort_key, reverse=True)
            unpaid = next((b for b in card_bills if not b.is_paid), None)
            if unpaid is not None:
                total_bills_due += unpaid.amount or 0.0
                unpaid_count += 1

        return BillSummary(
            total_credit_limit=total_credit_limit,
            total_outstanding=total_outstanding,
            total_bills_due=total_bills_due,
            unpaid_bills_count=unpaid_count,
            card_count=len(cards),
            placeholder_count=len(placeholders),
        )

    def relink_bills_on_card_add(self, new_card: Card) -> Optional[Card]:
        """Fold a placeholder card into a newly added real card with the same last 4 digits.

        The new card is added to the ledger if it is not there yet. Returns the
        absorbed placeholder, or None when there was nothing to absorb.
        """
        if not new_card.card_number:
            return None

        state = self.repo.load()
        if state.find_card(new_card.id) is None:
            state.cards.append(new_card)

        placeholder = next(
            (c for c in state.cards if c.is_placeholder and c.id != new_card.id and _absorbs(new_card, c)),
            None,
        )
        if placeholder is None:
            self.repo.save(state)
            return None

        moved = 0
        for bill in state.card_bills:
            if bill.card_id == placeholder.id:
                bill.card_id = new_card.id
                moved += 1
        state.cards = [c for c in state.cards if c.id != placeholder.id]
        self.repo.save(state)

        logger.info(
            "placeholder_card_absorbed",
            extra={"extra": {"placeholder_id": placeholder.id, "card_id": new_card.id, "bills_moved": moved}},
        )
        return placeholder

    def require_card(self, card_id: str) -> Card:
        card = self.repo.load().find_card(card_id)
        if card is None:
            raise CardNotFound(card_id)
        return card
