from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from pydantic import ValidationError

from schemas.sms import RawMessage
from services.json_logger import get_json_logger
from sms_bills.errors import InboxUnavailable


logger = get_json_logger("sms_bills.inbox")


class InboxSource(ABC):
    """Device inbox collaborator: permission handling and message reads."""

    @abstractmethod
    async def check_permission(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def request_permission(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def read_inbox(self, days_back: int) -> List[RawMessage]:
        raise NotImplementedError


def _within_window(messages: Iterable[RawMessage], days_back: int, now: Optional[datetime] = None) -> List[RawMessage]:
    now = now or datetime.now(timezone.utc)
    threshold = now - timedelta(days=days_back)
    kept: List[RawMessage] = []
    for m in messages:
        if m.timestamp is None:
            kept.append(m)
            continue
        ts = m.timestamp if m.timestamp.tzinfo else m.timestamp.replace(tzinfo=timezone.utc)
        if ts > threshold:
            kept.append(m)
    return kept


class StaticInboxSource(InboxSource):
    """Messages handed over by a caller (e.g. uploaded by the device app)."""

    def __init__(self, messages: Iterable[RawMessage], apply_window: bool = False) -> None:
        self.messages = list(messages)
        self.apply_window = apply_window

    async def check_permission(self) -> bool:
        return True

    async def request_permission(self) -> bool:
        return True

    async def read_inbox(self, days_back: int) -> List[RawMessage]:
        if self.apply_window:
            return _within_window(self.messages, days_back)
        return list(self.messages)


class JsonFileInboxSource(InboxSource):
    """
    Exported inbox file: a JSON array (or {"messages": [...]}) of
    {id, sender|address, body, date|timestamp} objects, date in epoch millis or ISO.
    """

    def __init__(self, path: str) -> None:
        self.path = path

    async def check_permission(self) -> bool:
        return os.path.isfile(self.path) and os.access(self.path, os.R_OK)

    async def request_permission(self) -> bool:
        # Nothing to prompt for; access is decided by the filesystem
        return await self.check_permission()

    async def read_inbox(self, days_back: int) -> List[RawMessage]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InboxUnavailable(f"Failed to read SMS inbox: {e}") from e

        items = data.get("messages", []) if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise InboxUnavailable("Failed to read SMS inbox: expected a list of messages")

        messages: List[RawMessage] = []
        skipped = 0
        for item in items:
            try:
                messages.append(RawMessage.model_validate(item))
            except ValidationError:
                skipped += 1
        if skipped:
            logger.warning("inbox_items_skipped", extra={"extra": {"skipped": skipped, "path": self.path}})
        return _within_window(messages, days_back)
