from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from schemas.ledger import BillRecord, Card
from schemas.sms import LinkedBill
from services import config
from services.json_logger import get_json_logger
from sms_bills.linker import new_entity_id


logger = get_json_logger("sms_bills.reconciler")


@dataclass
class ReconcilePlan:
    """Ledger changes computed for one run; nothing is applied until commit."""

    to_insert: List[BillRecord] = field(default_factory=list)
    to_update: List[BillRecord] = field(default_factory=list)
    # card_id -> new outstanding, only for cards whose outstanding was unset
    outstanding_updates: Dict[str, float] = field(default_factory=dict)
    sms_ids: List[str] = field(default_factory=list)

    @property
    def bills_count(self) -> int:
        return len(self.to_insert) + len(self.to_update)

    def is_empty(self) -> bool:
        return self.bills_count == 0


def amount_drifted(existing: float, incoming: float, tolerance: float = config.AMOUNT_DRIFT_TOLERANCE) -> bool:
    return abs(existing - incoming) / max(existing, 1.0) > tolerance


def new_bill_record(linked: LinkedBill, parsed_at: datetime) -> BillRecord:
    fact = linked.fact
    amount = fact.amount or 0.0
    return BillRecord(
        id=new_entity_id(),
        card_id=linked.card_id,
        card_last4=fact.card_last4,
        amount=amount,
        original_amount=amount,
        due_date=fact.due_date,
        min_due=fact.min_due or 0.0,
        is_paid=False,
        paid_amount=None,
        paid_type=None,
        paid_at=None,
        sms_id=fact.sms_id,
        sms_body=fact.sms_body,
        parsed_at=parsed_at,
    )


def merge_into(existing: BillRecord, incoming: BillRecord) -> BillRecord:
    """Refresh an existing bill from a new sighting of the same statement."""
    update = {
        "amount": incoming.amount,
        "original_amount": incoming.original_amount,
        "min_due": incoming.min_due,
        "sms_id": incoming.sms_id,
        "sms_body": incoming.sms_body,
        "parsed_at": incoming.parsed_at,
    }
    if amount_drifted(existing.amount, incoming.amount):
        logger.info(
            "bill_amount_drift_reset_paid",
            extra={"extra": {"bill_id": existing.id, "old_amount": existing.amount, "new_amount": incoming.amount, "was_paid": existing.is_paid}},
        )
        update.update({"is_paid": False, "paid_amount": None, "paid_type": None, "paid_at": None})
    return existing.model_copy(update=update)


def reconcile(
    linked_bills: Sequence[LinkedBill],
    existing_bills: Sequence[BillRecord],
    cards: Sequence[Card],
    parsed_at: Optional[datetime] = None,
) -> ReconcilePlan:
    """Decide, per linked bill, whether it updates a stored bill or is a new one.

    Bills merge on (card_id, due_date). Undated bills never merge. Several
    sightings of the same key inside one run collapse onto one record.
    """
    parsed_at = parsed_at or datetime.now(timezone.utc)
    plan = ReconcilePlan()

    by_key: Dict[Tuple[str, object], BillRecord] = {}
    for bill in existing_bills:
        if bill.due_date is not None:
            by_key.setdefault((bill.card_id, bill.due_date), bill)

    # Working view of records touched this run, keyed by bill id
    touched: Dict[str, BillRecord] = {}
    inserted_ids: List[str] = []
    updated_ids: List[str] = []

    outstanding: Dict[str, Optional[float]] = {c.id: c.outstanding for c in cards}

    for linked in linked_bills:
        incoming = new_bill_record(linked, parsed_at)
        key = (linked.card_id, incoming.due_date)
        current = by_key.get(key) if incoming.due_date is not None else None

        if current is not None:
            current = touched.get(current.id, current)
            merged = merge_into(current, incoming)
            touched[merged.id] = merged
            by_key[key] = merged
            if merged.id not in inserted_ids and merged.id not in updated_ids:
                updated_ids.append(merged.id)
            result = merged
        else:
            touched[incoming.id] = incoming
            inserted_ids.append(incoming.id)
            if incoming.due_date is not None:
                by_key[key] = incoming
            result = incoming

        if result.amount > 0 and linked.card_id in outstanding and not outstanding[linked.card_id]:
            outstanding[linked.card_id] = result.amount
            plan.outstanding_updates[linked.card_id] = result.amount

        if linked.fact.sms_id not in plan.sms_ids:
            plan.sms_ids.append(linked.fact.sms_id)

    plan.to_insert = [touched[i] for i in inserted_ids]
    plan.to_update = [touched[i] for i in updated_ids]
    return plan
