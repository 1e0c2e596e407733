from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from schemas.ids import EntityId
from sms_bills.amounts import parse_amount


OptionalMoney = Annotated[Optional[float], BeforeValidator(parse_amount)]


class PaidType(str, Enum):
    BILL = "bill"
    OUTSTANDING = "outstanding"
    CUSTOM = "custom"


class _LedgerModel(BaseModel):
    # Stored documents are camelCase; unknown keys from the card manager survive a round trip
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Card(_LedgerModel):
    id: EntityId
    name: str = ""
    card_number: str = ""
    card_type: str = "credit"
    credit_limit: OptionalMoney = None
    outstanding: OptionalMoney = None
    is_placeholder: bool = False
    created_at: Optional[datetime] = None

    @property
    def last4(self) -> str:
        return self.card_number[-4:]


class CardGroup(_LedgerModel):
    id: EntityId
    name: str = ""
    card_ids: List[EntityId] = Field(default_factory=list)
    primary_card_id: Optional[EntityId] = None
    share_bill: bool = False
    shared_limit: OptionalMoney = None


class BillRecord(_LedgerModel):
    id: EntityId
    card_id: EntityId
    card_last4: str
    amount: float = 0.0
    original_amount: float = 0.0
    due_date: Optional[date] = None
    min_due: float = 0.0
    is_paid: bool = False
    paid_amount: Optional[float] = None
    paid_type: Optional[PaidType] = None
    paid_at: Optional[datetime] = None
    sms_id: Optional[EntityId] = None
    sms_body: Optional[str] = None
    parsed_at: Optional[datetime] = None


class LedgerState(_LedgerModel):
    cards: List[Card] = Field(default_factory=list)
    card_groups: List[CardGroup] = Field(default_factory=list)
    card_bills: List[BillRecord] = Field(default_factory=list)
    processed_sms_ids: List[EntityId] = Field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def find_bill(self, bill_id: str) -> Optional[BillRecord]:
        for bill in self.card_bills:
            if bill.id == bill_id:
                return bill
        return None
