from __future__ import annotations

import json
import re
from typing import Any, List, Optional, Sequence

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from schemas.sms import ExtractionCandidate, SanitizedMessage
from services import config
from services.json_logger import get_json_logger
from settings.config import settings
from sms_bills.errors import ExtractionUnavailable


logger = get_json_logger("llm_bill_extraction")

SYSTEM_PROMPT = (
    "You are a credit card statement parser for Indian bank SMS. "
    "Extract billing facts in strict JSON. Never invent values that are not in the message."
)

INSTRUCTIONS = """Parse these credit card bill/statement SMS messages and extract billing information.

For each SMS, extract:
- index: the SMS number (1, 2, 3...)
- cardLast4: last 2-4 digits of card (look for patterns like XX1234, XX85, ****1234, ending 85)
- amount: total due amount in INR (number only, no currency symbol)
- dueDate: payment due date in YYYY-MM-DD format
- minDue: minimum due amount if mentioned (number or null)

IMPORTANT:
- Return ONLY a valid JSON array
- Only include SMS that are clearly credit card bills/statements
- Skip SMS that are just alerts or reminders
- Extract exact amounts as shown in SMS
- If you can't find a value, use null"""

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)


def build_prompt(batch: Sequence[SanitizedMessage]) -> str:
    blocks = "\n\n---\n\n".join(
        f"[{m.index}] Sender: {m.sender}\nMessage: {m.body}" for m in batch
    )
    return (
        f"{INSTRUCTIONS}\n\n"
        f"SMS Messages:\n{blocks}\n\n"
        "Return ONLY the JSON array, no explanations:"
    )


def parse_extraction_response(content: Optional[str]) -> List[Any]:
    """Pull the JSON array out of a model reply that may carry prose or code fences.

    Returns [] for anything that is not a JSON array.
    """
    if not content:
        return []
    text = _CODE_FENCE_RE.sub("", content)
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or end < start:
        logger.warning("extraction_no_json_array")
        return []
    try:
        data = json.loads(text[start : end + 1])
    except json.JSONDecodeError as e:
        logger.warning("extraction_json_invalid", extra={"extra": {"error": str(e)}})
        return []
    if not isinstance(data, list):
        return []
    return data


def to_candidates(items: Sequence[Any]) -> List[ExtractionCandidate]:
    candidates: List[ExtractionCandidate] = []
    for item in items[: config.MAX_CANDIDATES_PER_BATCH]:
        if not isinstance(item, dict):
            continue
        try:
            candidates.append(ExtractionCandidate.model_validate(item))
        except ValidationError as e:
            logger.warning("extraction_candidate_invalid", extra={"extra": {"errors": e.error_count()}})
    return candidates


class BillExtractor:
    """Best-effort bill extraction through an OpenAI-compatible chat model."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> None:
        self.model = model or settings.LLM_MODEL
        self._api_key = api_key if api_key is not None else settings.OPENAI_API_KEY
        self._base_url = base_url if base_url is not None else settings.LLM_BASE_URL
        self._client = client

    def is_configured(self) -> bool:
        return self._client is not None or bool(self._api_key)

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._api_key:
                raise ExtractionUnavailable("AI not configured. Please set OPENAI_API_KEY.")
            self._client = AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                timeout=settings.LLM_TIMEOUT_SECONDS,
            )
        return self._client

    async def complete(self, prompt: str) -> str:
        client = self._get_client()
        try:
            resp = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=config.LLM_TEMPERATURE,
                max_tokens=config.LLM_MAX_TOKENS,
            )
        except OpenAIError as e:
            raise ExtractionUnavailable(f"Failed to parse bills with AI: {e}") from e
        if not resp.choices:
            logger.warning("extraction_empty_choices", extra={"extra": {"model": self.model}})
            return ""
        return resp.choices[0].message.content or ""

    async def extract(self, batch: Sequence[SanitizedMessage]) -> List[ExtractionCandidate]:
        if not batch:
            return []
        if not self.is_configured():
            raise ExtractionUnavailable("AI not configured. Please set OPENAI_API_KEY.")

        logger.info("extraction_request", extra={"extra": {"messages": len(batch), "model": self.model}})
        content = await self.complete(build_prompt(batch))
        if config.LOG_LLM_RESPONSE_PREVIEW:
            logger.info("extraction_response_preview", extra={"extra": {"preview": content[:200]}})

        candidates = to_candidates(parse_extraction_response(content))
        logger.info("extraction_parsed", extra={"extra": {"candidates": len(candidates)}})
        return candidates
