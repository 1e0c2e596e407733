from __future__ import annotations

from typing import Iterable, Iterator, List, Set

from schemas.sms import RawMessage


class ProcessedSmsSet:
    """Append-only record of message ids that already produced a stored bill.

    Insertion order is kept so the persisted list stays stable across runs.
    """

    def __init__(self, ids: Iterable[str] = ()) -> None:
        self._order: List[str] = []
        self._seen: Set[str] = set()
        for sms_id in ids:
            self.add(sms_id)

    def add(self, sms_id: str) -> bool:
        """Record an id. Returns False when it was already present."""
        if sms_id in self._seen:
            return False
        self._seen.add(sms_id)
        self._order.append(sms_id)
        return True

    def __contains__(self, sms_id: object) -> bool:
        return sms_id in self._seen

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def to_list(self) -> List[str]:
        return list(self._order)


def exclude_processed(messages: Iterable[RawMessage], processed: ProcessedSmsSet) -> List[RawMessage]:
    return [m for m in messages if m.id not in processed]
