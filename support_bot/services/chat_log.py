"""
Conversation Log Store
======================

Append-only, per-user list of chat turns kept in the cache under
``chat:{user_id}``. The whole list expires CHAT_LOG_TTL_SECONDS (24 hours)
after the most recent append.

Entry Structure:
----------------
    {
        "id": "9f1c...",            # uuid4 hex
        "prompt": "my charger is broken",
        "reply": "Sorry to hear that...",
        "orderId": "A1",            # selected product at the time of the turn
        "productIndex": 0,
        "caseId": null,             # back-filled once folded into a case
        "timestamp": "2026-10-18T09:15:02.123456"
    }

Fold-in Marker:
---------------
caseId starts as null. When a case is created or updated for the entry's
(orderId, productIndex), the entry is copied into the case's response thread
and caseId is back-filled. Only the entries that were copied are stamped
(by id); a turn appended while the case was being saved stays pending for
the next fold. Entries with a caseId are never folded again.

The case thread also records each copied entry's id (log_entry_id), so a
back-fill that fails after the case was committed does not duplicate the
thread on the next fold.
"""

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .. import config
from ..models import utcnow

logger = logging.getLogger(__name__)


def chat_log_key(user_id: int) -> str:
    return f"chat:{user_id}"


def new_log_entry(
    prompt: str,
    reply: str,
    order_id: str,
    product_index: int,
    case_id: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "id": uuid.uuid4().hex,
        "prompt": prompt,
        "reply": reply,
        "orderId": order_id,
        "productIndex": product_index,
        "caseId": case_id,
        "timestamp": utcnow().isoformat(),
    }


def _matches(entry: Dict[str, Any], order_id: str, product_index: int) -> bool:
    return entry.get("orderId") == order_id and entry.get("productIndex") == product_index


class ConversationLogStore:
    def __init__(self, cache, ttl_seconds: int = None) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.CHAT_LOG_TTL_SECONDS

    def append(self, user_id: int, entry: Dict[str, Any]) -> None:
        key = chat_log_key(user_id)
        self.cache.rpush(key, entry)
        self.cache.expire(key, self.ttl_seconds)

    def entries(self, user_id: int) -> List[Dict[str, Any]]:
        return self.cache.lrange(chat_log_key(user_id), 0, -1)

    def recent(self, user_id: int, limit: int) -> List[Dict[str, Any]]:
        if limit <= 0:
            return []
        return self.cache.lrange(chat_log_key(user_id), -limit, -1)

    def pending_for(self, user_id: int, order_id: str, product_index: int) -> List[Tuple[int, Dict[str, Any]]]:
        """Return (position, entry) for entries of this product not yet folded into a case."""
        return [
            (position, entry)
            for position, entry in enumerate(self.entries(user_id))
            if entry.get("caseId") is None and _matches(entry, order_id, product_index)
        ]

    def backfill(self, user_id: int, entry_ids: Iterable[str], case_id: int) -> int:
        """Stamp the given still-pending entries with case_id. Returns the count."""
        wanted = set(entry_ids)
        if not wanted:
            return 0
        key = chat_log_key(user_id)
        stamped = 0
        for position, entry in enumerate(self.entries(user_id)):
            if entry.get("id") not in wanted or entry.get("caseId") is not None:
                continue
            self.cache.lset(key, position, dict(entry, caseId=case_id))
            stamped += 1
        if stamped:
            logger.debug("Back-filled %d chat log entries with case %s", stamped, case_id)
        return stamped

    def clear(self, user_id: int) -> None:
        self.cache.delete(chat_log_key(user_id))
