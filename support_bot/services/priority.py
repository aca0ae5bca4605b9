"""
Case priority classification.

Payment problems are urgent; everything else, including descriptions that
match no keyword at all, is low priority. Order-related keywords and "no match"
currently produce the same result. That gap is kept as observed and is an open
question for product owners.
"""

from typing import Tuple

PAYMENT_KEYWORDS: Tuple[str, ...] = ("payment", "refund", "billing", "charge", "transaction")
ORDER_KEYWORDS: Tuple[str, ...] = ("order", "delivery", "product", "item", "cancel", "undo")

HIGH = "high"
LOW = "low"


def classify(description: str) -> str:
    """Return "high" or "low" for a free-text issue description."""
    text = (description or "").lower()

    if any(keyword in text for keyword in PAYMENT_KEYWORDS):
        return HIGH
    if any(keyword in text for keyword in ORDER_KEYWORDS):
        return LOW
    return LOW
