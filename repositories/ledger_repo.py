from __future__ import annotations

import json
import os
import tempfile
from typing import Optional

from schemas.ledger import LedgerState
from services.json_logger import get_json_logger
from settings.config import settings


logger = get_json_logger("ledger_repo")


class LedgerRepository:
    """
    Filesystem-backed store for the card/bill ledger.
    The whole ledger is one JSON document:
      { "cards": [...], "cardGroups": [...], "cardBills": [...], "processedSmsIds": [...] }
    Saves replace the file atomically so readers never see a half-written ledger.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or settings.LEDGER_PATH

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def load(self) -> LedgerState:
        if not self.exists():
            return LedgerState()
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return LedgerState.model_validate(data)

    def save(self, state: LedgerState) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        payload = state.model_dump(mode="json", by_alias=True)

        fd, tmp_path = tempfile.mkstemp(prefix=".ledger-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
        logger.info(
            "ledger_saved",
            extra={"extra": {"cards": len(state.cards), "bills": len(state.card_bills), "processed": len(state.processed_sms_ids)}},
        )
