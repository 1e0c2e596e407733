from __future__ import annotations


class BillSyncError(Exception):
    """Base class for failures that abort a bill sync run."""


class SmsPermissionDenied(BillSyncError):
    def __init__(self, message: str = "SMS permission is required to get bills") -> None:
        super().__init__(message)


class InboxUnavailable(BillSyncError):
    def __init__(self, message: str = "Failed to read SMS inbox") -> None:
        super().__init__(message)


class ExtractionUnavailable(BillSyncError):
    """The extractor is not configured or its provider call failed."""


class BillNotFound(LookupError):
    def __init__(self, bill_id: str) -> None:
        super().__init__(f"Bill not found: {bill_id}")
        self.bill_id = bill_id


class CardNotFound(LookupError):
    def __init__(self, card_id: str) -> None:
        super().__init__(f"Card not found: {card_id}")
        self.card_id = card_id
