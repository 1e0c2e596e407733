from datetime import date

import pytest

from card_bills.bill_service import BillService
from schemas.ledger import BillRecord, Card, CardGroup, LedgerState, PaidType
from sms_bills.errors import BillNotFound, CardNotFound
from sms_bills.linker import build_placeholder_card


def _bill(bill_id, card_id, amount, due, is_paid=False, tail="4521"):
    return BillRecord(
        id=bill_id,
        card_id=card_id,
        card_last4=tail,
        amount=amount,
        original_amount=amount,
        due_date=due,
        is_paid=is_paid,
    )


@pytest.fixture
def service(repo):
    repo.save(
        LedgerState(
            cards=[Card(id="c1", name="HDFC", card_number="4111111111114521", credit_limit=100000, outstanding=20000)],
            card_bills=[_bill("b1", "c1", 12550.0, date(2024, 2, 5))],
        )
    )
    return BillService(repo)


class TestMarkPaid:
    def test_pay_bill_amount(self, service, repo):
        bill = service.mark_bill_paid("b1")

        assert bill.is_paid is True
        assert bill.paid_amount == 12550.0
        assert bill.paid_type == PaidType.BILL
        assert bill.paid_at is not None
        assert repo.load().find_card("c1").outstanding == 7450.0

    def test_pay_full_outstanding(self, service, repo):
        bill = service.mark_bill_paid("b1", paid_type=PaidType.OUTSTANDING)

        assert bill.paid_amount == 20000.0
        assert repo.load().find_card("c1").outstanding == 0.0

    def test_pay_custom_amount(self, service, repo):
        bill = service.mark_bill_paid("b1", paid_type=PaidType.CUSTOM, custom_amount="5,000")

        assert bill.paid_amount == 5000.0
        assert repo.load().find_card("c1").outstanding == 15000.0

    def test_custom_without_amount_falls_back_to_bill(self, service):
        bill = service.mark_bill_paid("b1", paid_type=PaidType.CUSTOM)

        assert bill.paid_amount == 12550.0

    def test_outstanding_never_negative(self, service, repo):
        service.mark_bill_paid("b1", paid_type=PaidType.CUSTOM, custom_amount=50000)

        assert repo.load().find_card("c1").outstanding == 0.0

    def test_unknown_bill(self, service):
        with pytest.raises(BillNotFound):
            service.mark_bill_paid("nope")


def test_mark_unpaid_clears_payment(service, repo):
    service.mark_bill_paid("b1")

    bill = service.mark_bill_unpaid("b1")

    assert bill.is_paid is False
    assert bill.paid_amount is None
    assert bill.paid_type is None
    assert bill.paid_at is None
    assert repo.load().find_bill("b1").is_paid is False


def test_update_amount_keeps_original(service, repo):
    service.update_bill_amount("b1", "Rs.9,000")

    bill = repo.load().find_bill("b1")
    assert bill.amount == 9000.0
    assert bill.original_amount == 12550.0


def test_delete_bill(service, repo):
    service.delete_bill("b1")

    assert repo.load().card_bills == []
    with pytest.raises(BillNotFound):
        service.delete_bill("b1")


def test_listing(service, repo):
    state = repo.load()
    state.card_bills.append(_bill("b2", "c2", 300.0, date(2024, 2, 9), is_paid=True))
    repo.save(state)

    assert [b.id for b in service.list_bills()] == ["b1", "b2"]
    assert [b.id for b in service.get_unpaid_bills()] == ["b1"]
    assert [b.id for b in service.get_card_bills("c2")] == ["b2"]


def test_require_card(service):
    assert service.require_card("c1").name == "HDFC"
    with pytest.raises(CardNotFound):
        service.require_card("missing")


def test_summary(repo):
    placeholder = build_placeholder_card("3310")
    repo.save(
        LedgerState(
            cards=[
                Card(id="c1", name="HDFC", card_number="4111111111114521", credit_limit=100000, outstanding=20000),
                Card(id="c2", name="ICICI primary", card_number="4111111111118008", credit_limit=150000, outstanding=1000),
                Card(id="c3", name="ICICI add-on", card_number="4111111111118016", credit_limit=150000),
                Card(id="d1", name="Wallet", card_number="", card_type="debit"),
                placeholder,
            ],
            card_groups=[
                CardGroup(id="g1", name="ICICI", card_ids=["c2", "c3"], primary_card_id="c2", share_bill=True, shared_limit=150000)
            ],
            card_bills=[
                _bill("old", "c1", 9000.0, date(2024, 1, 5)),
                _bill("new", "c1", 12550.0, date(2024, 2, 5)),
                _bill("p2", "c2", 3000.0, date(2024, 2, 12)),
                _bill("p3", "c3", 4000.0, date(2024, 2, 12)),
                _bill("ph", placeholder.id, 500.0, date(2024, 2, 18)),
                _bill("orphan", "deleted-card", 99999.0, date(2024, 2, 1)),
            ],
        )
    )

    summary = BillService(repo).get_summary()

    assert summary.total_credit_limit == 250000.0
    assert summary.total_outstanding == 21000.0
    assert summary.total_bills_due == 16050.0
    assert summary.unpaid_bills_count == 3
    assert summary.card_count == 3
    assert summary.placeholder_count == 1


class TestRelink:
    def _seed(self, repo, tail):
        placeholder = build_placeholder_card(tail)
        repo.save(
            LedgerState(
                cards=[placeholder],
                card_bills=[
                    _bill("b1", placeholder.id, 12550.0, date(2024, 2, 5), tail=tail),
                    _bill("b2", placeholder.id, 11000.0, date(2024, 1, 5), tail=tail),
                ],
            )
        )
        return placeholder

    def test_placeholder_absorbed_by_matching_card(self, repo):
        placeholder = self._seed(repo, "4521")
        new_card = Card(id="real", name="HDFC Regalia", card_number="4111111111114521")

        absorbed = BillService(repo).relink_bills_on_card_add(new_card)

        assert absorbed.id == placeholder.id
        state = repo.load()
        assert [c.id for c in state.cards] == ["real"]
        assert {b.card_id for b in state.card_bills} == {"real"}

    def test_short_tail_placeholder_absorbed(self, repo):
        self._seed(repo, "85")
        new_card = Card(id="sbi", name="SBI SimplyClick", card_number="4111111111110085")

        absorbed = BillService(repo).relink_bills_on_card_add(new_card)

        assert absorbed is not None
        assert {b.card_id for b in repo.load().card_bills} == {"sbi"}

    def test_no_matching_placeholder(self, repo):
        placeholder = self._seed(repo, "4521")
        new_card = Card(id="other", name="Axis", card_number="4111111111113310")

        assert BillService(repo).relink_bills_on_card_add(new_card) is None
        state = repo.load()
        assert {c.id for c in state.cards} == {placeholder.id, "other"}
        assert {b.card_id for b in state.card_bills} == {placeholder.id}
