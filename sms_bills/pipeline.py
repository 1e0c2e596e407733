"""Bill sync: inbox messages in, reconciled credit-card bills out.

Stages run strictly in order on whole batches:
permission -> inbox -> classify -> narrow -> dedupe -> sanitize -> extract
-> ground -> link -> reconcile -> commit.
Nothing is written before the final commit, so an aborted or failed run has
no effect on the stored ledger.
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from repositories.ledger_repo import LedgerRepository
from services.json_logger import get_json_logger
from services.llm_bill_extraction import BillExtractor
from settings.config import settings
from sms_bills.classifier import classify, narrow
from sms_bills.errors import BillSyncError, SmsPermissionDenied
from sms_bills.grounding import ground
from sms_bills.inbox import InboxSource
from sms_bills.linker import link
from sms_bills.processed import ProcessedSmsSet, exclude_processed
from sms_bills.reconciler import reconcile
from sms_bills.sanitizer import sanitize
from sms_bills.sink import commit


logger = get_json_logger("sms_bills.pipeline")


class SyncResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    bills_added: int = 0
    error: Optional[str] = None


class SmsBillSync:
    def __init__(
        self,
        inbox: InboxSource,
        extractor: BillExtractor,
        repo: LedgerRepository,
        days_back: Optional[int] = None,
    ) -> None:
        self.inbox = inbox
        self.extractor = extractor
        self.repo = repo
        self.days_back = days_back if days_back is not None else settings.SMS_DAYS_BACK

    async def ensure_permission(self) -> None:
        if await self.inbox.check_permission():
            return
        if not await self.inbox.request_permission():
            raise SmsPermissionDenied()

    async def get_bills(self, card_last4: Optional[str] = None, today: Optional[date] = None) -> SyncResult:
        """Run one sync, optionally only for messages mentioning `card_last4`."""
        try:
            return await self._run(card_last4, today)
        except BillSyncError as e:
            logger.error("bill_sync_failed", extra={"extra": {"error_type": type(e).__name__, "error": str(e)}})
            return SyncResult(success=False, bills_added=0, error=str(e))
        except Exception as e:
            # Ledger I/O and unexpected collaborator failures still end the run with a result
            logger.exception("bill_sync_crashed", extra={"extra": {"error_type": type(e).__name__}})
            return SyncResult(success=False, bills_added=0, error=f"Failed to get bills: {e}")

    async def _run(self, card_last4: Optional[str], today: Optional[date]) -> SyncResult:
        await self.ensure_permission()

        all_sms = await self.inbox.read_inbox(self.days_back)
        if not all_sms:
            logger.info("bill_sync_inbox_empty")
            return SyncResult(success=True, bills_added=0)

        bank_sms = classify(all_sms)
        logger.info("bill_sync_classified", extra={"extra": {"total": len(all_sms), "statements": len(bank_sms)}})
        if not bank_sms:
            return SyncResult(success=True, bills_added=0)

        if card_last4:
            bank_sms = narrow(bank_sms, card_last4)
            logger.info("bill_sync_narrowed", extra={"extra": {"card_last4": card_last4, "statements": len(bank_sms)}})

        state = self.repo.load()
        processed = ProcessedSmsSet(state.processed_sms_ids)
        new_sms = exclude_processed(bank_sms, processed)
        logger.info(
            "bill_sync_new_messages",
            extra={"extra": {"new": len(new_sms), "already_processed": len(bank_sms) - len(new_sms)}},
        )
        if not new_sms:
            return SyncResult(success=True, bills_added=0)

        candidates = await self.extractor.extract(sanitize(new_sms))
        if not candidates:
            logger.info("bill_sync_no_candidates", extra={"extra": {"messages": len(new_sms)}})
            return SyncResult(success=True, bills_added=0)

        facts = ground(candidates, new_sms, today=today)

        # Placeholders are appended to this working copy, never to the stored ledger directly
        working = state.model_copy(deep=True)
        linked = link(facts, working.cards)
        if not linked:
            return SyncResult(success=True, bills_added=0)

        plan = reconcile(linked, working.card_bills, working.cards)
        commit(self.repo, working, plan, processed)

        retry_count = len(new_sms) - len(plan.sms_ids)
        logger.info(
            "bill_sync_committed",
            extra={"extra": {
                "bills_linked": len(linked),
                "inserted": len(plan.to_insert),
                "updated": len(plan.to_update),
                "messages_marked": len(plan.sms_ids),
                "messages_left_for_retry": retry_count,
            }},
        )
        return SyncResult(success=True, bills_added=len(linked))
