from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated

from schemas.ids import EntityId
from sms_bills.amounts import normalize_card_tail, parse_amount, parse_due_date


Money = Annotated[Optional[float], BeforeValidator(parse_amount)]
CardTail = Annotated[Optional[str], BeforeValidator(normalize_card_tail)]
DueDate = Annotated[Optional[date], BeforeValidator(parse_due_date)]


class RawMessage(BaseModel):
    """One inbox message as read from the device. Never mutated after reading."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: EntityId
    sender: str = Field(default="", validation_alias=AliasChoices("sender", "address"))
    body: str = ""
    timestamp: Optional[datetime] = Field(default=None, validation_alias=AliasChoices("timestamp", "date"))


class SanitizedMessage(BaseModel):
    """Masked copy of a RawMessage that may be sent to the extractor.

    `index` is the 1-based position in the batch, matching the `[n]` numbering
    of the prompt. `original_id` is only used to look the raw message back up.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    sender: str
    body: str
    original_id: EntityId


class ExtractionCandidate(BaseModel):
    """Untrusted extractor output for one message."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    # Missing or 0 falls back to the first message of the batch
    index: Optional[int] = None
    card_last4: CardTail = None
    amount: Money = None
    due_date: DueDate = None
    min_due: Money = None


class ValidatedBillFact(BaseModel):
    """Billing facts confirmed against the original message body.

    Deliberately not an ExtractionCandidate subclass: only the grounding
    stage builds these, and only these reach card linking.
    """

    model_config = ConfigDict(frozen=True)

    index: int
    card_last4: str
    amount: Optional[float] = None
    due_date: Optional[date] = None
    min_due: Optional[float] = None
    validated: Literal[True] = True
    sms_id: EntityId
    sms_body: str


class LinkedBill(BaseModel):
    model_config = ConfigDict(frozen=True)

    card_id: EntityId
    fact: ValidatedBillFact
