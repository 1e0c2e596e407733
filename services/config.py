from __future__ import annotations

import os
from typing import Optional


def getenv_str(name: str, default: Optional[str] = None) -> str:
    v = os.getenv(name)
    return v if v is not None else default


def getenv_int(name: str, default: int) -> int:
    v = os.getenv(name)
    try:
        return int(v) if v is not None else default
    except Exception:
        return default


def getenv_float(name: str, default: float) -> float:
    v = os.getenv(name)
    try:
        return float(v) if v is not None else default
    except Exception:
        return default


def getenv_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


# Grounding: an extracted amount is accepted when it is within this relative
# distance of any currency amount found in the original message.
AMOUNT_MATCH_TOLERANCE = getenv_float("BILLSYNC_AMOUNT_MATCH_TOLERANCE", 0.1)

# Reconciliation: a re-sighted bill whose amount moved more than this is
# treated as a new statement and loses its paid status.
AMOUNT_DRIFT_TOLERANCE = getenv_float("BILLSYNC_AMOUNT_DRIFT_TOLERANCE", 0.1)

# Due dates outside [today - PAST, today + FUTURE] are logged as suspicious
DUE_DATE_MAX_PAST_DAYS = getenv_int("BILLSYNC_DUE_DATE_MAX_PAST_DAYS", 30)
DUE_DATE_MAX_FUTURE_DAYS = getenv_int("BILLSYNC_DUE_DATE_MAX_FUTURE_DAYS", 60)

# LLM request shaping
LLM_MAX_TOKENS = getenv_int("BILLSYNC_LLM_MAX_TOKENS", 2000)
LLM_TEMPERATURE = getenv_float("BILLSYNC_LLM_TEMPERATURE", 0.0)

# Upper bound on candidates accepted from one extractor reply
MAX_CANDIDATES_PER_BATCH = getenv_int("BILLSYNC_MAX_CANDIDATES_PER_BATCH", 500)

# Log the extractor reply prefix (never contains full numbers; sanitized input)
LOG_LLM_RESPONSE_PREVIEW = getenv_bool("BILLSYNC_LOG_LLM_RESPONSE_PREVIEW", False)
