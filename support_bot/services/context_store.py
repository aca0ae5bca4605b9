"""
Selected-product context: which (order, product) a user's chat is about.

One value per user, stored in the cache with a TTL. It is cleared on logout,
explicit deselection and every new login, so a stale selection never leaks
into a later session. A cache miss simply means "no product selected".
"""

import logging
from typing import Any, Dict, Optional

from .. import config

logger = logging.getLogger(__name__)


def selection_key(user_id: int) -> str:
    return f"selected:{user_id}"


class SelectedProductContextStore:
    def __init__(self, cache, ttl_seconds: int = None) -> None:
        self.cache = cache
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.SELECTION_TTL_SECONDS

    def get(self, user_id: int) -> Optional[Dict[str, Any]]:
        return self.cache.get(selection_key(user_id))

    def set(self, user_id: int, context: Dict[str, Any]) -> None:
        self.cache.set(selection_key(user_id), context, ttl=self.ttl_seconds)
        logger.debug(
            "User %s selected order %s product %s",
            user_id, context.get("orderId"), context.get("productIndex"),
        )

    def clear(self, user_id: int) -> None:
        self.cache.delete(selection_key(user_id))
