"""
Case Schemas for Support Bot
============================

Pydantic models for support cases and their response threads.

Endpoint Coverage:
------------------
- GET /api/user/{id}/cases: A user's cases
- GET /api/admin/cases: All cases, high priority first
- GET /api/admin/case/{id}/unified-thread: Case thread plus chat turns not
  yet folded into it
- PUT /api/case/{id}: Change status / priority, apply product changes
- POST /api/case/{id}/response: Add an admin reply

Case Lifecycle:
---------------
1. **open**: created from a chat turn
2. **in-progress**: an admin is working on it
3. **resolved**: closed by an admin (reopened if the user reports again)

Responses:
----------
Each response has an optional admin_id. A null admin_id marks a system
entry: a mirrored user message ("User: ...") or assistant reply ("Bot: ...").
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from .base import CamelModel


class CaseResponseOut(CamelModel):
    admin_id: Optional[int] = None
    message: str
    timestamp: datetime


class CaseOut(CamelModel):
    id: int
    user_id: int
    order_id: str
    product_index: int
    description: str
    priority: str
    status: str
    product_changes: Optional[Dict[str, Any]] = None
    responses: List[CaseResponseOut] = []
    created_at: datetime
    updated_at: datetime


class ProductChanges(CamelModel):
    """Admin edits to the case's product; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, ge=0)


class CaseUpdateRequest(CamelModel):
    status: Optional[Literal["open", "in-progress", "resolved"]] = None
    priority: Optional[Literal["high", "low"]] = None
    product_changes: Optional[ProductChanges] = None


class AdminResponseRequest(CamelModel):
    message: str = Field(..., min_length=1)


class ThreadEntryOut(CamelModel):
    """
    One entry of a unified thread.

    Attributes:
        source: "case" for stored responses, "chat" for chat turns still
                waiting to be folded into the case
    """
    source: Literal["case", "chat"]
    admin_id: Optional[int] = None
    message: str
    timestamp: datetime


class UnifiedThreadOut(CamelModel):
    case: CaseOut
    thread: List[ThreadEntryOut]
