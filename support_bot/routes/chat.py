"""
Chat Routes for Support Bot
===========================

Customer chat endpoints. Every chat turn is scoped to one product the user
picked from one of their orders.

Endpoints:
----------
- POST /chat/select: Select (orderId, productIndex) for the conversation
- POST /chat/clear: Drop the current selection
- POST /chat: Send a message, get the assistant's reply

Chat Flow:
----------
1. Client selects a product (POST /chat/select)
2. Client sends messages (POST /chat)
3. The orchestrator answers from the FAQ or the LLM, and may open or update
   a support case for the selected product
4. Switching products re-selects; logout clears everything

Rate Limiting:
--------------
POST /chat is rate limited per user (default: 30 per minute). Requests
without a readable bearer token fall back to the client IP.

Error Mapping:
--------------
- UserInputError (no selection, empty message, bad order/product): 400
- GenerationFailed: 502 with detail "Chat failed"
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.orm import Session

from ..auth import decode_access_token, get_current_user
from ..config import RATE_LIMIT_ENABLED, get_rate_limit_chat
from ..container import SupportServices, get_services
from ..db import get_db
from ..errors import GenerationFailed, UserInputError
from ..models import User
from ..schemas.auth import MessageResponse
from ..schemas.chat import (
    ChatMessageRequest,
    ChatMessageResponse,
    SelectionResponse,
    SelectProductRequest,
)


logger = logging.getLogger(__name__)

chat_router = APIRouter(prefix="/chat", tags=["Chat"])


# =============================================================================
# Rate Limiting Setup
# =============================================================================

def get_user_id_or_ip(request: Request) -> str:
    """Rate limit key: the subject of a valid bearer token, or the client IP."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        try:
            claims = decode_access_token(auth_header[7:].strip())
        except HTTPException:
            # forged or expired tokens are throttled by address
            return get_remote_address(request)
        return f"user:{claims['sub']}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_user_id_or_ip, enabled=RATE_LIMIT_ENABLED)


# =============================================================================
# Chat Endpoints
# =============================================================================

@chat_router.post("/select", response_model=SelectionResponse)
def select_product(
    req: SelectProductRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    services: SupportServices = Depends(get_services),
) -> SelectionResponse:
    """Scope the conversation to one product of one of the caller's orders."""
    try:
        context = services.orchestrator.select_product(db, user.id, req.order_id, req.product_index)
    except UserInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    logger.info("User %s selected order %s item %d", user.id, req.order_id, req.product_index)
    return SelectionResponse.model_validate(context)


@chat_router.post("/clear", response_model=MessageResponse)
def clear_selection(
    user: User = Depends(get_current_user),
    services: SupportServices = Depends(get_services),
) -> MessageResponse:
    services.orchestrator.clear_selection(user.id)
    return MessageResponse(message="Selection cleared")


@chat_router.post("", response_model=ChatMessageResponse)
@limiter.limit(get_rate_limit_chat)
def chat_message(
    request: Request,
    req: ChatMessageRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    services: SupportServices = Depends(get_services),
) -> ChatMessageResponse:
    """Send a message about the selected product and receive the reply."""
    try:
        result = services.orchestrator.handle_chat_turn(db, user.id, req.message)
    except UserInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except GenerationFailed:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Chat failed")

    if result.case_id is not None:
        logger.info("Chat turn for user %s touched case %s", user.id, result.case_id)
    return ChatMessageResponse(reply=result.reply, case_id=result.case_id)
