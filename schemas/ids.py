from __future__ import annotations

from typing import Any

from pydantic import BeforeValidator
from typing_extensions import Annotated


def _coerce_id(value: Any) -> Any:
    # Cards and bills created by older clients carry numeric ids
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return str(value)
    return value


# Canonical identifier for cards, bills, groups and inbox messages.
EntityId = Annotated[str, BeforeValidator(_coerce_id)]
