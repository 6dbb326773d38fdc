"""Batch classification of candidates as manufacturing prospects with an LLM."""

import json
import logging
import re
import time
from dataclasses import dataclass, replace
from typing import Any, Collection, Dict, List, Optional, Sequence

from plantscout.models import RELEVANCE_LEVELS, RelevanceVerdict
from plantscout.vendors import openai_chat

logger = logging.getLogger(__name__)

BATCH_SIZE = 20
BATCH_DELAY_SECONDS = 0.3
MAX_REASON_LENGTH = 200

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


class ClassificationError(RuntimeError):
    """Raised when a batch cannot be classified."""


@dataclass(frozen=True)
class ClassificationItem:
    index: int
    name: str
    types: Sequence[str] = ()
    primary_type: Optional[str] = None
    editorial_summary: Optional[str] = None
    generative_summary: Optional[str] = None
    formatted_address: Optional[str] = None


def _format_item(item: ClassificationItem) -> str:
    types = json.dumps(list(item.types)) if item.types else item.primary_type or "(no type)"
    summary = item.generative_summary or item.editorial_summary or "(no summary)"
    return f"{item.index} | {item.name} | {types} | {summary}"


def build_prompt(items: Sequence[ClassificationItem]) -> str:
    lines = "\n".join(_format_item(item) for item in items)
    return f"""You are classifying places as manufacturing/industrial prospects for B2B sales. For each place below, determine manufacturing relevance.

Return a JSON array with one object per place. Each object must have:
- index: the 0-based index from the list
- relevance: "high" | "medium" | "low" | "none"
- reason: brief explanation (1 short phrase)

Relevance guide:
- high: Clearly a manufacturing facility, factory, machine shop, fabrication, industrial plant
- medium: Likely manufacturing (e.g. industrial supplier) or name/summary suggests it
- low: Unclear; could be related to manufacturing
- none: Clearly NOT manufacturing (retail, restaurant, office, etc.)

Places (index | name | types | summary):
{lines}

Return a JSON array. Example: [{{"index":0,"relevance":"high","reason":"Metal fabrication"}}]"""


def _strip_code_fence(text: str) -> str:
    return _FENCE_END.sub("", _FENCE_START.sub("", text.strip()))


def _extract_entries(parsed: Any) -> List[Any]:
    if isinstance(parsed, list):
        return parsed
    if isinstance(parsed, dict):
        for key in ("results", "places", "data"):
            if isinstance(parsed.get(key), list):
                return parsed[key]
        return [value for value in parsed.values() if isinstance(value, dict) and "index" in value]
    raise ClassificationError("LLM did not return a valid results array")


def _parse_index(value: Any) -> Optional[int]:
    """Whole numbers and digit strings; fractional or boolean indexes are rejected."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def parse_classification_response(text: str, valid_indexes: Collection[int]) -> List[RelevanceVerdict]:
    """Parse the model's answer into verdicts for the requested indexes only.

    Accepts a bare JSON array, optionally wrapped in a markdown code fence, or an
    object wrapping the array under ``results``, ``places`` or ``data``.
    Unknown relevance values become ``low``.
    """
    if not text or not text.strip():
        raise ClassificationError("Empty response from LLM")

    cleaned = _strip_code_fence(text)
    try:
        parsed = json.loads(cleaned)
    except ValueError as exc:
        raise ClassificationError(f"Invalid JSON from LLM: {cleaned[:100]}...") from exc

    verdicts: List[RelevanceVerdict] = []
    for entry in _extract_entries(parsed):
        if not isinstance(entry, dict):
            continue
        index = _parse_index(entry.get("index"))
        if index is None or index not in valid_indexes:
            continue
        relevance = entry.get("relevance")
        if relevance not in RELEVANCE_LEVELS:
            relevance = "low"
        reason = str(entry.get("reason") or "")[:MAX_REASON_LENGTH]
        verdicts.append(RelevanceVerdict(index=index, relevance=relevance, reason=reason))
    return verdicts


def classify_batch(
    items: Sequence[ClassificationItem],
    api_key: str,
    model: str = openai_chat.DEFAULT_MODEL,
) -> List[RelevanceVerdict]:
    if not items:
        return []
    try:
        text = openai_chat.complete(build_prompt(items), api_key=api_key, model=model)
    except openai_chat.EmptyCompletionError as exc:
        raise ClassificationError(str(exc)) from exc
    return parse_classification_response(text, {item.index for item in items})


def classify_in_batches(
    items: Sequence[ClassificationItem],
    api_key: str,
    model: str = openai_chat.DEFAULT_MODEL,
    batch_size: int = BATCH_SIZE,
) -> Dict[int, RelevanceVerdict]:
    """Classify ``items`` in chunks, keyed by each item's position in ``items``."""
    verdicts: Dict[int, RelevanceVerdict] = {}
    for start in range(0, len(items), batch_size):
        chunk = [replace(item, index=start + offset) for offset, item in enumerate(items[start : start + batch_size])]
        logger.info("Classifying places %d-%d of %d", start + 1, start + len(chunk), len(items))
        for verdict in classify_batch(chunk, api_key=api_key, model=model):
            verdicts[verdict.index] = verdict
        if start + batch_size < len(items):
            time.sleep(BATCH_DELAY_SECONDS)
    return verdicts
