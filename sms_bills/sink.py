from __future__ import annotations

from typing import Iterable

from repositories.ledger_repo import LedgerRepository
from schemas.ledger import LedgerState
from sms_bills.processed import ProcessedSmsSet
from sms_bills.reconciler import ReconcilePlan


def apply_plan(state: LedgerState, plan: ReconcilePlan, processed: ProcessedSmsSet) -> LedgerState:
    """Return a new ledger with the plan's bills, card balances and processed ids applied.

    `state.cards` is expected to already contain any placeholder cards of the run.
    """
    updates = {bill.id: bill for bill in plan.to_update}
    bills = [updates.get(bill.id, bill) for bill in state.card_bills]
    bills.extend(plan.to_insert)

    cards = []
    for card in state.cards:
        if card.id in plan.outstanding_updates:
            card = card.model_copy(update={"outstanding": plan.outstanding_updates[card.id]})
        cards.append(card)

    marked = ProcessedSmsSet(processed)
    for sms_id in plan.sms_ids:
        marked.add(sms_id)

    return state.model_copy(
        update={"cards": cards, "card_bills": bills, "processed_sms_ids": marked.to_list()}
    )


def commit(
    repo: LedgerRepository,
    state: LedgerState,
    plan: ReconcilePlan,
    processed: Iterable[str],
) -> LedgerState:
    """Persist bill changes and processed-id bookkeeping together in one save."""
    new_state = apply_plan(state, plan, ProcessedSmsSet(processed))
    repo.save(new_state)
    return new_state
