"""
Chat Schemas for Support Bot
============================

Pydantic models for the chat endpoints.

Endpoint Coverage:
------------------
- POST /api/chat/select: Scope the chat to one (order, product)
- POST /api/chat/clear: Drop the current selection
- POST /api/chat: Send a message and receive the assistant's reply

Key Concepts:
-------------
1. **Selection**: every chat turn is about one product, addressed by its
   order id and its position in that order (productIndex). A message sent
   without a selection is rejected.

2. **Cases**: a reply may open or update a support case for the selected
   product. The response carries the case id when that happened.

Validation:
-----------
- Message length is constrained by MAX_MESSAGE_LENGTH (default: 2000 chars)
  to prevent excessive LLM token usage.
- productIndex must be non-negative; the upper bound is checked against the
  order itself.
"""

from typing import Optional

from pydantic import Field

from ..config import MAX_MESSAGE_LENGTH
from .base import CamelModel


class SelectProductRequest(CamelModel):
    order_id: str = Field(..., min_length=1)
    product_index: int = Field(..., ge=0)


class SelectionResponse(CamelModel):
    """The stored selected-product context."""
    order_id: str
    product_index: int
    product_name: str
    quantity: Optional[int] = None
    price: Optional[float] = None
    domain: Optional[str] = None
    order_status: Optional[str] = None


class ChatMessageRequest(CamelModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)


class ChatMessageResponse(CamelModel):
    """
    Attributes:
        reply: Assistant reply, with any case directive removed
        case_id: Case opened or updated by this turn, if any
    """
    reply: str
    case_id: Optional[int] = None
