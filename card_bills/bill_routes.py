from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from card_bills.bill_service import BillService, BillSummary
from repositories.ledger_repo import LedgerRepository
from schemas.ledger import BillRecord, Card, PaidType
from schemas.sms import RawMessage
from services.llm_bill_extraction import BillExtractor
from sms_bills.errors import BillNotFound, CardNotFound
from sms_bills.inbox import StaticInboxSource
from sms_bills.pipeline import SmsBillSync, SyncResult


router = APIRouter(prefix="/bills", tags=["bills"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SyncRequest(_CamelModel):
    messages: List[RawMessage] = Field(default_factory=list)
    card_last4: Optional[str] = None
    card_id: Optional[str] = None


class MarkPaidRequest(_CamelModel):
    paid_type: PaidType = PaidType.BILL
    custom_amount: Optional[Any] = None


class UpdateAmountRequest(_CamelModel):
    amount: Any


class RelinkResponse(_CamelModel):
    absorbed_placeholder_id: Optional[str] = None


def get_ledger_repo() -> LedgerRepository:
    return LedgerRepository()


def get_bill_extractor() -> BillExtractor:
    return BillExtractor()


def get_bill_service(repo: LedgerRepository = Depends(get_ledger_repo)) -> BillService:
    return BillService(repo)


def _not_found(e: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/sync", response_model=SyncResult, response_model_by_alias=True)
async def sync_bills(
    body: SyncRequest,
    repo: LedgerRepository = Depends(get_ledger_repo),
    extractor: BillExtractor = Depends(get_bill_extractor),
) -> SyncResult:
    card_last4 = body.card_last4
    if card_last4 is None and body.card_id:
        card = repo.load().find_card(body.card_id)
        if card is None:
            raise _not_found(CardNotFound(body.card_id))
        card_last4 = card.last4 or None

    # Messages were already read on the device; the window still applies
    sync = SmsBillSync(inbox=StaticInboxSource(body.messages, apply_window=True), extractor=extractor, repo=repo)
    return await sync.get_bills(card_last4=card_last4)


@router.get("", response_model=List[BillRecord], response_model_by_alias=True)
async def list_bills(service: BillService = Depends(get_bill_service)) -> List[BillRecord]:
    return service.list_bills()


@router.get("/unpaid", response_model=List[BillRecord], response_model_by_alias=True)
async def list_unpaid_bills(service: BillService = Depends(get_bill_service)) -> List[BillRecord]:
    return service.get_unpaid_bills()


@router.get("/summary", response_model=BillSummary, response_model_by_alias=True)
async def bills_summary(service: BillService = Depends(get_bill_service)) -> BillSummary:
    return service.get_summary()


@router.get("/card/{card_id}", response_model=List[BillRecord], response_model_by_alias=True)
async def list_card_bills(card_id: str, service: BillService = Depends(get_bill_service)) -> List[BillRecord]:
    return service.get_card_bills(card_id)


@router.post("/relink", response_model=RelinkResponse, response_model_by_alias=True)
async def relink_bills(card: Card, service: BillService = Depends(get_bill_service)) -> RelinkResponse:
    absorbed = service.relink_bills_on_card_add(card)
    return RelinkResponse(absorbed_placeholder_id=absorbed.id if absorbed else None)


@router.post("/{bill_id}/paid", response_model=BillRecord, response_model_by_alias=True)
async def mark_paid(
    bill_id: str,
    body: Optional[MarkPaidRequest] = None,
    service: BillService = Depends(get_bill_service),
) -> BillRecord:
    body = body or MarkPaidRequest()
    try:
        return service.mark_bill_paid(bill_id, paid_type=body.paid_type, custom_amount=body.custom_amount)
    except BillNotFound as e:
        raise _not_found(e)


@router.post("/{bill_id}/unpaid", response_model=BillRecord, response_model_by_alias=True)
async def mark_unpaid(bill_id: str, service: BillService = Depends(get_bill_service)) -> BillRecord:
    try:
        return service.mark_bill_unpaid(bill_id)
    except BillNotFound as e:
        raise _not_found(e)


@router.patch("/{bill_id}/amount", response_model=BillRecord, response_model_by_alias=True)
async def update_amount(
    bill_id: str,
    body: UpdateAmountRequest,
    service: BillService = Depends(get_bill_service),
) -> BillRecord:
    try:
        return service.update_bill_amount(bill_id, body.amount)
    except BillNotFound as e:
        raise _not_found(e)


@router.delete("/{bill_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bill(bill_id: str, service: BillService = Depends(get_bill_service)) -> None:
    try:
        service.delete_bill(bill_id)
    except BillNotFound as e:
        raise _not_found(e)
