"""
Pydantic schemas for the Support Bot API.

Wire format is camelCase (orderId, productIndex) to match the dashboard;
Python code uses snake_case attribute names. All models accept either form
on input and emit camelCase on output.
"""

from .base import CamelModel
from .auth import SignupRequest, LoginRequest, TokenResponse, MessageResponse
from .chat import (
    ChatMessageRequest,
    ChatMessageResponse,
    SelectProductRequest,
    SelectionResponse,
)
from .orders import ProductOut, OrderOut, UserOut
from .cases import (
    CaseResponseOut,
    CaseOut,
    ProductChanges,
    CaseUpdateRequest,
    AdminResponseRequest,
    ThreadEntryOut,
    UnifiedThreadOut,
)

__all__ = [
    "CamelModel",
    "SignupRequest",
    "LoginRequest",
    "TokenResponse",
    "MessageResponse",
    "ChatMessageRequest",
    "ChatMessageResponse",
    "SelectProductRequest",
    "SelectionResponse",
    "ProductOut",
    "OrderOut",
    "UserOut",
    "CaseResponseOut",
    "CaseOut",
    "ProductChanges",
    "CaseUpdateRequest",
    "AdminResponseRequest",
    "ThreadEntryOut",
    "UnifiedThreadOut",
]
