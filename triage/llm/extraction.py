"""
JSON Extraction
===============
Best-effort recovery of a JSON value from free-form model text.

Strategies (first successful parse wins):
    1. fenced   — content of the first ``` block, optionally tagged json
    2. braces   — span from the first "{" to the last "}"
    3. whole    — the entire trimmed text

The result is a tagged value, never an exception:
    Parsed(value)         — a JSON value was recovered
    Unrecoverable(reason) — every strategy failed; reason says why
"""
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```")
_BRACE_SPAN = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class Parsed:
    value: Any
    strategy: str = "whole"


@dataclass(frozen=True)
class Unrecoverable:
    reason: str


ExtractionResult = Union[Parsed, Unrecoverable]


def _try_loads(candidate: str) -> tuple[bool, Any]:
    try:
        return True, json.loads(candidate)
    except (json.JSONDecodeError, ValueError):
        return False, None


def extract_json(text: Optional[str]) -> ExtractionResult:
    """
    Pull the first parseable JSON value out of ``text``.

    Parameters
    ----------
    text : str or None
        Raw answer text from a provider.

    Returns
    -------
    Parsed or Unrecoverable
        ``Parsed.strategy`` names the strategy that succeeded.
    """
    if not text or not text.strip():
        return Unrecoverable("empty response text")

    fenced = _FENCED_BLOCK.search(text)
    if fenced:
        ok, value = _try_loads(fenced.group(1).strip())
        if ok:
            return Parsed(value, "fenced")

    braces = _BRACE_SPAN.search(text)
    if braces:
        ok, value = _try_loads(braces.group(0))
        if ok:
            return Parsed(value, "braces")

    ok, value = _try_loads(text.strip())
    if ok:
        return Parsed(value, "whole")

    logger.debug("No JSON recovered from %d chars of model text", len(text))
    return Unrecoverable("no fenced block, brace span or whole text parsed as JSON")
