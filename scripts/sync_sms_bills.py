from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from repositories.ledger_repo import LedgerRepository  # noqa: E402
from services.llm_bill_extraction import BillExtractor  # noqa: E402
from settings.config import settings  # noqa: E402
from settings.logging_config import configure_logging  # noqa: E402
from sms_bills.inbox import JsonFileInboxSource  # noqa: E402
from sms_bills.pipeline import SmsBillSync  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Sync credit card bills from an exported SMS inbox")
    parser.add_argument("--inbox", required=True, help="Exported inbox JSON file")
    parser.add_argument("--ledger", default=None, help=f"Ledger JSON path (default: {settings.LEDGER_PATH})")
    parser.add_argument("--card-last4", default=None, help="Only process statements mentioning these digits")
    parser.add_argument("--days-back", type=int, default=None, help=f"Inbox window in days (default: {settings.SMS_DAYS_BACK})")
    args = parser.parse_args()

    configure_logging()
    sync = SmsBillSync(
        inbox=JsonFileInboxSource(args.inbox),
        extractor=BillExtractor(),
        repo=LedgerRepository(args.ledger),
        days_back=args.days_back,
    )
    result = asyncio.run(sync.get_bills(card_last4=args.card_last4))
    print(json.dumps(result.model_dump(by_alias=True, exclude_none=True)))
    if not result.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
