"""Shared test helpers: sample bank SMS and fakes for the inbox and extractor.

These are NOT fixtures - they are regular functions and classes imported by
conftest.py and individual test files.
"""
from __future__ import annotations

from types import SimpleNamespace
from typing import Dict, List, Optional

from schemas.sms import ExtractionCandidate, RawMessage, SanitizedMessage
from sms_bills.inbox import InboxSource


HDFC_STATEMENT = (
    "HDFC Bank Credit Card XX4521 Statement: Total due: Rs.12,550.00, "
    "Min due: Rs.630.00. Pay by 05-Feb-2024. Call 18002586161 for help."
)
ICICI_STATEMENT = (
    "ICICI Bank Credit Card XX8008 Statement for Jan: Amount due Rs 8,200, "
    "min amount Rs 410, due by 12-Feb-2024. Details at https://icici.example/cc"
)
SBI_STATEMENT = (
    "E-statement of SBI Credit Card ending 85 dated 20/01/2024: Total Amt Due Rs 3,450; "
    "Min Amt Due Rs 173; Payable by 09/02/2024. Write to care@sbicard.example"
)
AXIS_STATEMENT = (
    "Axis Bank Credit Card no. XX3310 Statement generated. Total amt: INR 22,940.75 "
    "Due on: 18-02-2024"
)
KOTAK_STATEMENT = (
    "Kotak Credit Card ****7777 statement: Total amount due Rs.5,120.00 payable by 22-Feb-2024"
)
PAYMENT_RECEIVED = "Payment received on your HDFC Bank Credit Card XX4521. Total due: Rs.0. Thank you."
OTP_MESSAGE = "OTP 482913 for txn of Rs.2,000 on Credit Card XX4521. Do not share."
PERSONAL_MESSAGE = "Dinner at 8? Bring the statement from the landlord."


def make_sms(sms_id: str, body: str, sender: str = "AD-BANKSMS") -> RawMessage:
    return RawMessage(id=sms_id, sender=sender, body=body)


class FakeInbox(InboxSource):
    def __init__(self, messages: List[RawMessage], granted: bool = True, grant_on_request: bool = False) -> None:
        self.messages = messages
        self.granted = granted
        self.grant_on_request = grant_on_request
        self.permission_requests = 0
        self.reads = 0

    async def check_permission(self) -> bool:
        return self.granted

    async def request_permission(self) -> bool:
        self.permission_requests += 1
        if self.grant_on_request:
            self.granted = True
        return self.granted

    async def read_inbox(self, days_back: int) -> List[RawMessage]:
        self.reads += 1
        return list(self.messages)


class FakeExtractor:
    """Answers per original message id, addressing candidates by batch index."""

    def __init__(self, answers: Optional[Dict[str, dict]] = None, error: Optional[Exception] = None) -> None:
        self.answers = answers or {}
        self.error = error
        self.batches: List[List[SanitizedMessage]] = []

    async def extract(self, batch):
        self.batches.append(list(batch))
        if self.error is not None:
            raise self.error
        out = []
        for m in batch:
            if m.original_id in self.answers:
                out.append(ExtractionCandidate(index=m.index, **self.answers[m.original_id]))
        return out


class FakeChatClient:
    """Stands in for AsyncOpenAI: returns canned reply text and records requests."""

    def __init__(self, reply: str = "[]", error: Optional[Exception] = None, no_choices: bool = False) -> None:
        self.reply = reply
        self.no_choices = no_choices
        self.error = error
        self.calls: List[dict] = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    async def _create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        if self.no_choices:
            return SimpleNamespace(choices=[])
        message = SimpleNamespace(content=self.reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])
