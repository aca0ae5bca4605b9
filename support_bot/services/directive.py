"""
Case Directive Extraction
=========================

The assistant is prompted to append one JSON object to its reply when a
support case should be opened or updated:

    I'm sorry your headphones arrived damaged. I've raised this with our team.
    {"createCase": true, "orderId": "A1", "productIndex": 0,
     "description": "Headphones arrived damaged", "priority": "low"}

Models do not always follow instructions exactly, so extraction is lenient
about formatting and strict about meaning:

- Code fences (```json ... ```) are removed before anything else.
- Only an object that ends exactly at the end of the reply is considered.
  Example JSON quoted in the middle of an answer is never mistaken for a
  directive.
- The object must be valid JSON with createCase == true, an orderId, an
  integer productIndex and a non-empty description. A priority is kept only
  when it is "high" or "low".
- Anything else yields no directive. This module never raises; it is a pure
  parser with no knowledge of orders or cases.

When the trailing object carries a createCase key it is removed from the
display text even if it fails validation, since it was meant for us and not
for the user.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_-]*")
_decoder = json.JSONDecoder()

VALID_PRIORITIES = ("high", "low")


@dataclass(frozen=True)
class CaseDirective:
    """A validated request from the model to open or update a case."""
    order_id: str
    product_index: int
    description: str
    priority: Optional[str] = None


@dataclass(frozen=True)
class ExtractionResult:
    clean_text: str
    directive: Optional[CaseDirective] = None


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def _find_trailing_object(text: str) -> Optional[tuple]:
    """
    Locate a JSON object that ends exactly at the end of text.

    Returns (start_index, parsed_object) for the outermost such object, or
    None. Every "{" is tried left to right; the first one that decodes to a
    dict spanning to the end of the text wins, which makes it the outermost.
    """
    if not text.endswith("}"):
        return None

    for match in re.finditer(r"\{", text):
        start = match.start()
        try:
            obj, end = _decoder.raw_decode(text, start)
        except ValueError:
            continue
        if end == len(text) and isinstance(obj, dict):
            return start, obj
    return None


def _coerce_order_id(value: Any) -> Optional[str]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (str, int)):
        order_id = str(value).strip()
        return order_id or None
    return None


def _coerce_index(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"-?\d+", value.strip()):
        return int(value.strip())
    return None


def parse_directive(payload: Dict[str, Any]) -> Optional[CaseDirective]:
    """Validate a decoded object; return None if it is not a usable directive."""
    if payload.get("createCase") is not True:
        return None

    order_id = _coerce_order_id(payload.get("orderId"))
    product_index = _coerce_index(payload.get("productIndex"))
    description = payload.get("description")

    if order_id is None or product_index is None:
        return None
    if not isinstance(description, str) or not description.strip():
        return None

    priority = payload.get("priority")
    if isinstance(priority, str) and priority.strip().lower() in VALID_PRIORITIES:
        priority = priority.strip().lower()
    else:
        priority = None

    return CaseDirective(
        order_id=order_id,
        product_index=product_index,
        description=description.strip(),
        priority=priority,
    )


def extract_directive(raw_reply: str) -> ExtractionResult:
    """Split a generated reply into display text and an optional directive."""
    text = strip_code_fences(raw_reply)

    found = _find_trailing_object(text)
    if found is None:
        return ExtractionResult(clean_text=text)

    start, payload = found
    if "createCase" not in payload:
        return ExtractionResult(clean_text=text)

    clean_text = text[:start].rstrip()
    directive = parse_directive(payload)
    if directive is None:
        logger.info("Discarding malformed case directive: %s", json.dumps(payload)[:200])
    return ExtractionResult(clean_text=clean_text, directive=directive)
